import numpy as np
import pytest

from engine.interface import SimulationEngine, read_field, EngineCallError
from engine.molecules import INPUT_MOLECULES, MoleculeFamily, find_input_molecule, find_molecule
from engine.reference_engine import ReferenceEngine
from engine.session_manager import VisualizerSession, VisualizerConfig, REDUCED_CONFIG

SMALL = VisualizerConfig(grid_size=12)


class FailingStepEngine(ReferenceEngine):
    def simulate_step(self, dt):
        raise RuntimeError("solver diverged")


class FailingReadEngine(ReferenceEngine):
    fail_reads = False

    def read_value(self, handle, row, col):
        if self.fail_reads and (row, col) == (3, 3):
            raise RuntimeError("bad read")
        return super().read_value(handle, row, col)


class FailingInitEngine(ReferenceEngine):
    def initialize_grid(self):
        if getattr(self, "primary", None) is not None:
            raise RuntimeError("no memory")
        super().initialize_grid()


class FailingResetEngine(ReferenceEngine):
    fail_init = False

    def initialize_grid(self):
        if self.fail_init:
            raise RuntimeError("allocation failed")
        super().initialize_grid()


def make_session(engine_cls=ReferenceEngine, config=SMALL):
    engine = engine_cls(grid_size=config.grid_size, seed=1)
    return VisualizerSession(config=config, engine=engine), engine


def test_reference_engine_satisfies_protocol():
    assert isinstance(ReferenceEngine(grid_size=4), SimulationEngine)


def test_operations_before_attach_are_noops():
    session = VisualizerSession(config=SMALL)
    assert not session.is_ready
    assert session.step() is False
    assert session.refresh() is False
    assert session.apply_inputs() is False
    assert session.reset() is False
    assert session.edit_cell(1, 1, 0.5) is False
    session.start()
    assert not session.scheduler.is_running()
    assert session.iteration == 0


def test_failed_initialization_leaves_session_unready():
    engine = FailingInitEngine(grid_size=4)
    session = VisualizerSession(config=VisualizerConfig(grid_size=4), engine=engine)
    assert not session.is_ready


def test_steps_record_tracked_samples_without_leaking_handles():
    session, engine = make_session()
    session.toggle_tracked(2, 2)
    assert session.scheduler.run_for(5) == 5
    assert session.iteration == 5
    assert session.current_time == pytest.approx(0.5)
    assert len(session.tracker.history(session.tracker.cells[0])) == 5
    assert engine.open_handles == 0


def test_read_failure_releases_handle():
    session, engine = make_session(FailingReadEngine)
    engine.fail_reads = True
    assert session.refresh() is False
    assert engine.open_handles == 0
    with pytest.raises(EngineCallError):
        read_field(engine, session.molecule, SMALL.grid_size)
    assert engine.open_handles == 0


def test_step_failure_stops_run_loop():
    session, engine = make_session(FailingStepEngine)
    assert session.scheduler.run_for(10) == 1
    assert not session.scheduler.is_running()
    assert session.iteration == 0


def test_overrides_follow_selection():
    session, engine = make_session()
    session.set_brush_radius(1)
    session.stamp_at(5, 5)
    session.set_input_value("TGFBin", 0.7)
    assert session.apply_inputs() is True
    assert len(engine.overrides) == 5 * len(INPUT_MOLECULES)
    assert engine.overrides[(find_input_molecule("TGFBin").index, 5, 5)] == pytest.approx(0.7)
    assert engine.overrides[(find_input_molecule("AngIIin").index, 4, 5)] == 0.0

    session.clear_selection()
    assert len(session.selection) == 0
    assert engine.overrides == {}


def test_selected_input_reaches_engine_on_step():
    session, engine = make_session()
    session.set_input_value("TGFBin", 1.0)
    session.stamp_at(6, 6)
    session.step()
    assert engine.inputs[find_input_molecule("TGFBin").index, 6, 6] == pytest.approx(1.0)
    assert engine.inputs[:, 0, 0].sum() == 0.0


def test_reset_keeps_tracked_cells_and_clears_the_rest():
    session, engine = make_session()
    session.toggle_tracked(3, 3)
    session.set_input_value("IL6in", 0.4)
    session.stamp_at(6, 6)
    session.scheduler.run_for(3)
    assert session.reset() is True
    assert session.iteration == 0
    assert len(session.selection) == 0
    assert engine.overrides == {}
    assert all(v == 0.0 for v in session.input_values.values())
    assert [c.key for c in session.tracker.cells] == [(3, 3)]
    # the post-reset refresh takes one fresh sample
    assert len(session.tracker.history(session.tracker.cells[0])) == 1


def test_failed_reset_keeps_session_state():
    session, engine = make_session(FailingResetEngine)
    session.toggle_tracked(1, 1)
    session.set_input_value("TGFBin", 0.5)
    session.stamp_at(1, 1)
    session.scheduler.run_for(5)
    selected = len(session.selection)

    engine.fail_init = True
    assert session.reset() is False
    assert session.iteration == 5
    assert engine.steps == 5
    assert len(session.tracker.history(session.tracker.cells[0])) == 5
    assert len(session.selection) == selected > 0
    assert session.input_values["TGFBin"] == 0.5

    engine.fail_init = False
    assert session.reset() is True
    assert session.iteration == 0
    assert len(session.selection) == 0


def test_parameter_validation():
    session, engine = make_session()
    with pytest.raises(ValueError):
        session.set_time_step(0)
    with pytest.raises(ValueError):
        session.set_input_value("TGFBin", -0.1)
    with pytest.raises(ValueError):
        session.set_input_value("nope", 0.1)
    with pytest.raises(ValueError):
        session.set_molecule("nope")
    with pytest.raises(ValueError):
        session.set_rate_constant("k_input", 0.0)
    with pytest.raises(ValueError):
        session.edit_cell(1, 1, -1.0)


def test_parameters_reach_engine():
    session, engine = make_session()
    session.set_rate_constant("k_diffusion", 0.3)
    assert engine.rates[7] == pytest.approx(0.3)
    session.set_time_step(0.05)
    assert engine.dt == pytest.approx(0.05)


def test_brush_radius_is_clamped():
    session = VisualizerSession(config=SMALL)
    session.set_brush_radius(99)
    assert session.brush_radius == 15
    session.set_brush_radius(0)
    assert session.brush_radius == 1


def test_set_molecule_switches_field():
    session, engine = make_session()
    session.set_molecule("TGFBfb")
    assert session.molecule.family is MoleculeFamily.FEEDBACK
    assert np.all(session.field == 0.0)
    session.set_molecule(find_molecule("fibronectin"))
    assert session.field.max() > 0.0


def test_edit_cell_updates_field_without_sampling():
    session, engine = make_session()
    session.toggle_tracked(4, 4)
    assert session.edit_cell(4, 4, 2.5) is True
    assert session.field[4, 4] == pytest.approx(2.5)
    assert session.tracker.history(session.tracker.cells[0]) == []
    assert session.tracked_cell_values()[0][1] == pytest.approx(2.5)
    assert session.edit_cell(40, 40, 1.0) is False


def test_toggle_out_of_bounds_is_ignored():
    session, engine = make_session()
    assert session.toggle_tracked(-1, 0) is None
    assert session.toggle_tracked(0, SMALL.grid_size) is None
    assert len(session.tracker) == 0


def test_listener_failures_do_not_propagate():
    session, engine = make_session()
    seen = []

    def broken(_session):
        raise RuntimeError("draw failed")

    session.add_listener(broken)
    session.add_listener(lambda s: seen.append(s.iteration))
    assert session.step() is True
    assert seen == [1]


def test_reduced_config_limits_tracking():
    session, engine = make_session(config=VisualizerConfig(grid_size=12, max_tracked=2,
                                                           history_capacity=REDUCED_CONFIG.history_capacity))
    assert session.toggle_tracked(0, 0) is True
    assert session.toggle_tracked(0, 1) is True
    assert session.toggle_tracked(0, 2) is None
    assert session.tracker.history_capacity == 200


def test_notify_user_uses_callback():
    messages = []
    session = VisualizerSession(config=SMALL, notify=messages.append)
    session.notify_user("export failed")
    assert messages == ["export failed"]


def test_painting_and_toggling_do_not_sample():
    session, engine = make_session()
    session.toggle_tracked(2, 2)
    session.stamp_at(2, 2)
    session.set_molecule("fibronectin")
    session.refresh(record=False)
    assert session.tracker.history(session.tracker.cells[0]) == []
    session.step()
    assert len(session.tracker.history(session.tracker.cells[0])) == 1


def test_tracked_cell_labels_and_summary():
    session, engine = make_session()
    session.set_brush_radius(1)
    session.stamp_at(5, 5)
    session.toggle_tracked(4, 7)
    session.toggle_tracked(0, 2)
    assert session.tracked_cell_label(0, 2) == "Cell 2 (0,2)"
    assert session.tracked_cell_label(4, 7) == "Cell 1 (4,7)"
    with pytest.raises(ValueError):
        session.tracked_cell_label(9, 9)
    assert session.selection_summary() == (
        "5 cells selected for input",
        f"2 cells selected for tracking (max {session.config.max_tracked})",
    )


def test_host_timer_reports_stop_after_failed_step():
    session, engine = make_session(FailingStepEngine)
    pending, stops = [], []
    session.use_host_timer(pending.append, on_stop=lambda: stops.append(session.scheduler.is_running()))
    session.start()
    pending.pop()()
    assert stops == [False]
    assert pending == []
