# Fixed point scale factors
PRECISION = 1_000_000_000_000_000_000  # 1e18, 1.0 in fixed point
HALF_PRECISION = PRECISION // 2
BPS_SCALE = 10_000  # Basis points (100% = 10000)
ORACLE_DECIMALS = 8  # DIA style feeds report 8 decimals
ORACLE_SCALE = 10 ** ORACLE_DECIMALS
PRICE_DECIMALS = 18

# Integer widths
MAX_UINT128 = 2**128 - 1
MAX_UINT256 = 2**256 - 1

# Transcendental constants, scaled by PRECISION
LN_2 = 693_147_180_559_945_309  # ln(2)
E = 2_718_281_828_459_045_235  # e
LN_TAYLOR_TERMS = 10
EXP_TAYLOR_TERMS = 15
MAX_EXP_INPUT = 135 * PRECISION  # e^135 * 1e18 is the last power below u256::MAX
MAX_FACTORIAL_INPUT = 57  # 58! does not fit in 256 bits

# Time constants
YEAR_IN_SECONDS = 365 * 24 * 60 * 60  # 365 days * 24 hours * 60 minutes * 60 seconds

# Oracle staleness thresholds (seconds)
DEFAULT_MAX_PRICE_AGE = 3600  # 1 hour
FAST_FINALITY_MAX_PRICE_AGE = 5  # sub-second finality chains
MAX_VALID_PRICE = 1_000_000_000 * PRECISION  # $1B sanity bound
DEFAULT_ORACLE_TIMEOUT = 10.0  # seconds
DEFAULT_BATCH_WORKERS = 4

# Price keys
NATIVE_PRICE_KEY = "STT/USD"

# Interest rate curve defaults
DEFAULT_BASE_RATE = PRECISION * 2 // 100  # 2% APR
DEFAULT_SLOPE1 = PRECISION * 8 // 100  # 8% until the kink
DEFAULT_SLOPE2 = PRECISION * 250 // 100  # 250% above the kink
DEFAULT_KINK = PRECISION * 80 // 100  # 80% optimal utilization
DEFAULT_RESERVE_FACTOR = PRECISION * 10 // 100  # 10%

# Curve parameter bounds
MIN_KINK = PRECISION // 100  # 1%
MAX_KINK = PRECISION * 99 // 100  # 99%
MAX_BASE_RATE = PRECISION  # 100% APR
