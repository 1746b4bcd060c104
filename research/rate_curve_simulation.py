import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from pathlib import Path
from datetime import datetime

from lending_model.src.constants import PRECISION
from lending_model.src.state.rate_params import RateCurveParams
from lending_model.src.instructions.interest_rate_curve import get_borrow_rate, get_supply_rate

@dataclass
class SimulationParams:
    initial_utilization: float = 0.5
    utilization_volatility: float = 0.01
    simulation_days: int = 365
    steps_per_day: int = 24  # hourly steps
    random_seed: Optional[int] = None
    experiment_name: str = "default"
    curve: RateCurveParams = field(default_factory=RateCurveParams)

@dataclass
class CurveConfig:
    """A named curve to compare against others"""
    name: str
    params: RateCurveParams

    def __str__(self):
        p = self.params
        return (f"{self.name} (base={p.base_rate / PRECISION:.3f}, s1={p.slope1 / PRECISION:.3f}, "
                f"s2={p.slope2 / PRECISION:.3f}, kink={p.kink / PRECISION:.2f})")

def rates_at(params: RateCurveParams, utilization: float) -> Tuple[float, float]:
    """Evaluate the fixed point curve at a float utilization, returning float rates"""
    u = int(utilization * PRECISION)
    borrow = get_borrow_rate(params, u)
    supply = get_supply_rate(params, u, borrow)
    return borrow / PRECISION, supply / PRECISION

def rate_curve_frame(params: RateCurveParams, n_points: int = 201) -> pd.DataFrame:
    """Full rate curve over [0, 1] utilization.

    Returns:
        DataFrame with columns: utilization, borrow_rate, supply_rate
    """
    utilizations = np.linspace(0, 1, n_points)
    rates = [rates_at(params, u) for u in utilizations]
    return pd.DataFrame({
        "utilization": utilizations,
        "borrow_rate": [borrow for borrow, _ in rates],
        "supply_rate": [supply for _, supply in rates],
    })

class UtilizationSimulation:
    def __init__(self, params: SimulationParams):
        self.params = params
        self.utilizations: List[float] = []
        self.borrow_rates: List[float] = []
        self.supply_rates: List[float] = []
        self.times: List[float] = []
        self.rng = np.random.default_rng(params.random_seed)

    def simulate(self) -> pd.DataFrame:
        current_utilization = self.params.initial_utilization
        total_steps = self.params.simulation_days * self.params.steps_per_day

        for step in range(total_steps):
            # Random walk on utilization, kept inside [0, 1]
            current_utilization += self.rng.normal(0, self.params.utilization_volatility)
            current_utilization = float(np.clip(current_utilization, 0.0, 1.0))

            borrow, supply = rates_at(self.params.curve, current_utilization)

            self.times.append(step / self.params.steps_per_day)
            self.utilizations.append(current_utilization)
            self.borrow_rates.append(borrow)
            self.supply_rates.append(supply)

        return self.to_frame()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "day": self.times,
            "utilization": self.utilizations,
            "borrow_rate": self.borrow_rates,
            "supply_rate": self.supply_rates,
        })

    def plot_results(self, output_root: Path = Path("research/results")) -> Path:
        output_dir = Path(output_root) / self.params.experiment_name
        output_dir.mkdir(parents=True, exist_ok=True)

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8))

        # Plot utilization
        ax1.plot(self.times, self.utilizations, label='Utilization')
        ax1.axhline(y=self.params.curve.kink / PRECISION, color='r', linestyle='--', alpha=0.3)
        ax1.set_ylabel('Utilization')
        ax1.set_title('Pool Utilization Over Time')
        ax1.legend()
        ax1.grid(True)

        # Plot rates
        ax2.plot(self.times, self.borrow_rates, label='Borrow Rate', color='orange')
        ax2.plot(self.times, self.supply_rates, label='Supply Rate', color='green')
        ax2.set_ylabel('Annual Rate')
        ax2.set_xlabel('Time (days)')
        ax2.set_title('Interest Rates Over Time')
        ax2.legend()
        ax2.grid(True)

        plt.tight_layout()

        plot_name = f"kink_{self.params.curve.kink / PRECISION:.2f}_vol_{self.params.utilization_volatility}"
        if self.params.random_seed is not None:
            plot_name += f"_seed_{self.params.random_seed}"

        path = output_dir / f"{plot_name}.png"
        plt.savefig(path)
        plt.close()
        return path

def compare_curves(curves: List[CurveConfig], output_root: Path = Path("research/results")) -> Path:
    """Plot borrow and supply curves of several parameter sets together"""
    output_dir = Path(output_root) / "curve_comparison"
    output_dir.mkdir(parents=True, exist_ok=True)

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 10))

    for curve in curves:
        frame = rate_curve_frame(curve.params)
        ax1.plot(frame["utilization"] * 100, frame["borrow_rate"] * 100, label=str(curve))
        ax2.plot(frame["utilization"] * 100, frame["supply_rate"] * 100, label=str(curve))

    ax1.set_ylabel('Borrow Rate (%)')
    ax1.set_title('Borrow Rate vs Utilization')
    ax1.legend(loc='upper left')
    ax1.grid(True, alpha=0.3)  # Lighter grid

    ax2.set_ylabel('Supply Rate (%)')
    ax2.set_xlabel('Utilization (%)')
    ax2.set_title('Supply Rate vs Utilization')
    ax2.legend(bbox_to_anchor=(1.05, 1), loc='upper left')
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = output_dir / f"curve_comparison_{timestamp}.png"
    plt.savefig(path, bbox_inches='tight', dpi=300)
    plt.close()
    return path

def main():
    curves = [
        CurveConfig(
            name="Deployment",  # 2% / 8% / 250% at 80%
            params=RateCurveParams.from_bps(200, 800, 25000, 8000, 1000)),
        CurveConfig(
            name="Testnet",
            params=RateCurveParams.from_bps(200, 1000, 30000, 8000, 1000)),
        CurveConfig(
            name="Early kink",
            params=RateCurveParams.from_bps(200, 800, 25000, 6500, 1000)),
    ]

    compare_curves(curves)

    sim = UtilizationSimulation(SimulationParams(
        experiment_name="single_run",
        random_seed=42,
        simulation_days=100,
    ))
    frame = sim.simulate()
    sim.plot_results()
    print(frame.describe())

if __name__ == "__main__":
    main()
