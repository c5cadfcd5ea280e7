import sys
import argparse
import logging
from typing import List, Optional, Tuple

# Engine imports
from engine.constants import DEFAULT_EXPORT_DIR, LOGGING_LEVEL, DEFAULT_DT
from engine.molecules import DEFAULT_MOLECULE
from engine.rates import load_rate_constants
from engine.reference_engine import ReferenceEngine
from engine.session_manager import VisualizerSession, FULL_CONFIG, REDUCED_CONFIG

logger = logging.getLogger("ecm")


def _ints(text: str, n_min: int, n_max: int, what: str) -> Tuple[int, ...]:
    try:
        parts = tuple(int(p) for p in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"{what} expects integers, got '{text}'") from None
    if not n_min <= len(parts) <= n_max:
        raise argparse.ArgumentTypeError(f"{what} expects {n_min}-{n_max} comma-separated values, got '{text}'")
    return parts


def parse_paint(text: str) -> Tuple[int, ...]:
    return _ints(text, 2, 3, "--paint")


def parse_cell(text: str) -> Tuple[int, ...]:
    return _ints(text, 2, 2, "--track")


def parse_input(text: str) -> Tuple[str, float]:
    name, sep, value = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"--input expects NAME=VALUE, got '{text}'")
    try:
        return name.strip(), float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"--input value must be numeric, got '{value}'") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ECM grid visualization and interaction.")
    parser.add_argument("--headless", action="store_true", help="Run without the GUI and export results")
    parser.add_argument("--steps", type=int, default=100, help="Number of simulation steps (headless)")
    parser.add_argument("--molecule", type=str, default=DEFAULT_MOLECULE.name, help="Molecule to visualize")
    parser.add_argument("--paint", type=parse_paint, action="append", default=[],
                        help="Brush stamp ROW,COL[,RADIUS]; repeatable")
    parser.add_argument("--track", type=parse_cell, action="append", default=[],
                        help="Track cell ROW,COL; repeatable")
    parser.add_argument("--input", type=parse_input, action="append", default=[],
                        help="Input value NAME=VALUE applied to painted cells; repeatable")
    parser.add_argument("--rates", type=str, default=None, help="JSON file with rate constants")
    parser.add_argument("--time-step", type=float, default=DEFAULT_DT, help="Simulation time step")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the reference engine")
    parser.add_argument("--reduced", action="store_true", help="Use the reduced tracking configuration")
    parser.add_argument("--export-dir", type=str, default=DEFAULT_EXPORT_DIR, help="Directory for SVG/PNG exports")
    parser.add_argument("--export-html", type=str, default=None, help="Path to export interactive HTML")
    parser.add_argument("--log-level", type=str, default=LOGGING_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def build_session(args: argparse.Namespace) -> VisualizerSession:
    """Create a session on the reference engine and apply every CLI setting to it."""
    rates = load_rate_constants(args.rates) if args.rates else None
    config = REDUCED_CONFIG if args.reduced else FULL_CONFIG
    session = VisualizerSession(config=config, rates=rates)
    session.set_time_step(args.time_step)
    session.attach_engine(ReferenceEngine(grid_size=config.grid_size, seed=args.seed))
    session.set_molecule(args.molecule)

    for name, value in args.input:
        session.set_input_value(name, value)
    for paint in args.paint:
        if len(paint) == 3:
            session.set_brush_radius(paint[2])
        session.stamp_at(paint[0], paint[1])
    for row, col in args.track:
        if session.toggle_tracked(row, col) is None:
            logger.warning(f"Cannot track ({row},{col}): out of bounds or tracker full")
    if args.paint:
        session.apply_inputs()
    return session


def run_headless(args: argparse.Namespace) -> int:
    from visual.heatmap import HeatmapRenderer
    from visual.timeseries import PlotGeometry, TimeSeriesRenderer
    from visual.export_tools import (
        export_heatmap_svg, export_heatmap_png, export_lineplot_svg, export_lineplot_png,
        export_timeseries_to_plotly_html, safe_export,
    )

    session = build_session(args)
    c = session.config
    heatmap = HeatmapRenderer(size=c.heatmap_size)
    lineplot = TimeSeriesRenderer(PlotGeometry(c.lineplot_width, c.lineplot_height, c.lineplot_padding))

    logger.info(f"Running {args.steps} steps of {session.molecule.name} (dt={session.time_step})")
    done = session.scheduler.run_for(args.steps)
    if session.iteration < done:
        logger.error(f"Run stopped after {session.iteration} of {args.steps} steps")

    heatmap.render(session)
    lineplot.draw(session.tracker)
    for cell, value in session.tracked_cell_values():
        logger.info(f"Cell ({cell.row},{cell.col}) {session.molecule.name} = {value:.6g}")

    written = [
        safe_export(session, export_heatmap_svg, session, args.export_dir, c.heatmap_size),
        safe_export(session, export_heatmap_png, session, heatmap, args.export_dir, c.heatmap_size),
        safe_export(session, export_lineplot_svg, session, args.export_dir),
        safe_export(session, export_lineplot_png, session, lineplot, args.export_dir),
    ]
    if args.export_html:
        written.append(safe_export(session, export_timeseries_to_plotly_html, session, args.export_html))
    failed = sum(1 for path in written if path is None)
    logger.info(f"Headless run complete: iteration {session.iteration}, {len(written) - failed} files written")
    return 1 if failed or session.iteration < args.steps else 0


def launch_gui(args: Optional[argparse.Namespace] = None) -> int:
    """
    Launch GUI mode using VisualizerGUI.
    """
    try:
        from gui.visualizer_gui import VisualizerGUI
        session = build_session(args) if args is not None else VisualizerSession(engine=ReferenceEngine())
        gui = VisualizerGUI(session, export_dir=args.export_dir if args is not None else DEFAULT_EXPORT_DIR)
        gui.mainloop()
    except Exception:
        logger.exception("GUI launch failed")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    if args.headless:
        try:
            return run_headless(args)
        except (ValueError, OSError) as e:
            logger.error(f"Headless run failed: {e}")
            return 2
    return launch_gui(args)


if __name__ == "__main__":
    sys.exit(main())
