"""Research tooling around the rate curve: curve tables, simulations, plots"""
from lending_model.src.state.rate_params import RateCurveParams
from rate_curve_simulation import (
    CurveConfig,
    SimulationParams,
    UtilizationSimulation,
    compare_curves,
    rate_curve_frame,
)

def test_rate_curve_frame():
    frame = rate_curve_frame(RateCurveParams(), n_points=101)
    assert list(frame.columns) == ["utilization", "borrow_rate", "supply_rate"]
    assert len(frame) == 101
    assert frame["borrow_rate"].is_monotonic_increasing
    assert (frame["supply_rate"] <= frame["borrow_rate"]).all()
    assert frame["borrow_rate"].iloc[0] == RateCurveParams().base_rate / 10**18

def test_simulation_is_reproducible():
    params = SimulationParams(simulation_days=3, steps_per_day=4, random_seed=57)
    first = UtilizationSimulation(params).simulate()
    second = UtilizationSimulation(params).simulate()
    assert len(first) == 12
    assert first.equals(second)
    assert first["utilization"].between(0.0, 1.0).all()

def test_plots_are_written(tmp_path):
    sim = UtilizationSimulation(SimulationParams(simulation_days=2, random_seed=1, experiment_name="test"))
    sim.simulate()
    path = sim.plot_results(tmp_path)
    assert path.exists()
    assert path.parent == tmp_path / "test"

    comparison = compare_curves([
        CurveConfig(name="Default", params=RateCurveParams()),
        CurveConfig(name="Steep", params=RateCurveParams.from_bps(200, 1000, 30000, 8000, 1000)),
    ], tmp_path)
    assert comparison.exists()
