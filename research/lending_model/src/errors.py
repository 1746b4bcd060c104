"""Custom errors for the lending engine"""

class ProtocolError(Exception):
    """Base error class for protocol errors"""
    pass

class MathError(ProtocolError):
    """Base error for fixed point arithmetic failures"""
    pass

class DivisionByZeroError(MathError):
    """Error for a zero divisor (mul_div, weighted averages, zero periods)"""
    pass

class ArithmeticOverflowError(MathError):
    """Error for a value that does not fit in 256 bits"""
    pass

class InvalidInputError(ProtocolError):
    """Error for malformed arguments (lengths, ranges, bounds)"""
    pass

class OracleError(ProtocolError):
    """Base error class for oracle failures"""
    pass

class InvalidOracleError(OracleError):
    """Error for a missing or already configured oracle handle"""
    pass

class InvalidKeyError(OracleError):
    """Error for an empty price key"""
    pass

class ZeroPriceError(OracleError):
    """Error for a zero price reported by the oracle"""
    pass

class PriceNotFoundError(ZeroPriceError):
    """Error for a key the oracle never published"""
    pass

class PriceTooOldError(OracleError):
    """Error for a price older than the allowed staleness window"""
    pass

class InvalidPriceError(OracleError):
    """Error for malformed price data (future timestamp, out of range value)"""
    pass

class OracleUnavailableError(OracleError):
    """Error for an oracle call that timed out or failed"""
    pass
