"""
ECM visualizer window: heatmap and tracked-cell chart on the left, controls on the right.
"""

from __future__ import annotations
import tkinter as tk
from tkinter import messagebox, filedialog, ttk
from tkinter import BooleanVar, StringVar, IntVar, DoubleVar
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.figure import Figure
from typing import Dict, Optional, Tuple
import os
import logging

logger = logging.getLogger(__name__)

from .ui_constants import (
    FONT_FAMILY, FONT_SIZES, COLORS, PADDING, MARGINS, SIZES, BORDER,
    RUN_LOOP_DELAY_MS, INPUT_RANGE, TIME_STEP_RANGE, LABELS,
    CELL_SWATCH_WIDTH, CELL_ENTRY_WIDTH, CELL_VALUE_FORMAT,
)

# Engine imports
from engine.constants import DEFAULT_EXPORT_DIR, MIN_BRUSH_RADIUS, MAX_BRUSH_RADIUS
from engine.molecules import INPUT_MOLECULES, displayable_molecules
from engine.rates import RATE_RANGES, RATE_LABELS
from engine.session_manager import VisualizerSession

# Visualization imports
from visual.grid_mapper import GridMapper
from visual.heatmap import HeatmapRenderer
from visual.timeseries import PlotGeometry, TimeSeriesRenderer
from visual.interaction import InteractionController, PointerEvent, PointerKind
from visual.export_tools import (
    HeatmapRecorder,
    export_heatmap_svg,
    export_heatmap_png,
    export_lineplot_svg,
    export_lineplot_png,
    export_timeseries_to_plotly_html,
    export_frames_to_gif,
    safe_export,
    now_str,
)


class VisualizerGUI(tk.Tk):
    """Interactive heatmap viewer bound to one VisualizerSession"""

    def __init__(self, session: VisualizerSession, title: str = "ECM Simulation",
                 export_dir: str = DEFAULT_EXPORT_DIR):
        super().__init__()
        self.title(title)
        self.configure(bg=COLORS['background'])

        self.session = session
        self.export_dir = export_dir
        config = session.config

        # messages go to a dialog instead of the log only
        session.notify = lambda msg: messagebox.showerror("ECM Simulation", msg)
        session.use_host_timer(lambda callback: self.after(RUN_LOOP_DELAY_MS, callback),
                               on_stop=self._sync_run_buttons)

        # Renderers: figures sized to the backing surfaces
        self.heatmap_figure = Figure(figsize=(config.heatmap_size / 100, config.heatmap_size / 100), dpi=100)
        self.heatmap_canvas: Optional[FigureCanvasTkAgg] = None
        self.plot_figure = Figure(figsize=(config.lineplot_width / 100, config.lineplot_height / 100), dpi=100)
        self.plot_canvas: Optional[FigureCanvasTkAgg] = None

        # Control variables
        self.molecule_var = StringVar(value=session.molecule.name)
        self.brush_mode_var = BooleanVar(value=session.brush_mode)
        self.tracking_mode_var = BooleanVar(value=session.tracking_mode)
        self.brush_radius_var = IntVar(value=session.brush_radius)
        self.time_step_var = DoubleVar(value=session.time_step)
        self.record_var = BooleanVar(value=False)
        self.input_vars: Dict[str, DoubleVar] = {}
        self.rate_vars: Dict[str, DoubleVar] = {}
        self.cell_vars: Dict[Tuple[int, int], StringVar] = {}
        self.cell_entries: Dict[Tuple[int, int], ttk.Entry] = {}
        self._shown_values: Dict[Tuple[int, int], str] = {}

        self._setup_ui()

        self.heatmap = HeatmapRenderer(size=config.heatmap_size, figure=self.heatmap_figure)
        self.lineplot = TimeSeriesRenderer(
            PlotGeometry(config.lineplot_width, config.lineplot_height, config.lineplot_padding),
            figure=self.plot_figure,
        )
        self.recorder = HeatmapRecorder(self.heatmap)
        self.controller = InteractionController(session, GridMapper(config.grid_size, config.display_size))

        session.add_listener(self._on_session_changed)
        self._bind_pointer()
        self._on_session_changed(session)

    # -----------------------
    # Layout
    # -----------------------
    def _setup_ui(self):
        self._create_header()

        content = tk.Frame(self, bg=COLORS['background'])
        content.pack(fill=tk.BOTH, expand=True, padx=MARGINS['content'], pady=MARGINS['content'])

        self._create_visual_panel(content)
        self._create_sidebar(content)

    def _button(self, parent, text, command, bg=None, fg=None):
        return tk.Button(
            parent,
            text=text,
            command=command,
            font=(FONT_FAMILY, FONT_SIZES['label'], "bold"),
            bg=bg or COLORS['accent_light'],
            fg=fg or COLORS['accent'],
            relief=tk.SOLID,
            bd=BORDER['width'],
            padx=PADDING['medium'],
            pady=PADDING['small'],
        )

    def _label(self, parent, text, size='label', **kwargs):
        return tk.Label(
            parent,
            text=text,
            font=(FONT_FAMILY, FONT_SIZES[size]),
            bg=kwargs.pop('bg', COLORS['background']),
            fg=kwargs.pop('fg', COLORS['text_primary']),
            **kwargs,
        )

    def _create_header(self):
        header = tk.Frame(self, bg=COLORS['background'])
        header.pack(side=tk.TOP, fill=tk.X, padx=MARGINS['content'], pady=(MARGINS['content'], 0))

        tk.Label(
            header,
            text="ECM Simulation",
            font=(FONT_FAMILY, FONT_SIZES['title'], "bold"),
            bg=COLORS['background'],
            fg=COLORS['text_primary']
        ).pack(anchor=tk.W)

        controls = tk.Frame(header, bg=COLORS['background'])
        controls.pack(fill=tk.X, pady=(PADDING['medium'], 0))

        self._label(controls, "Molecule:").pack(side=tk.LEFT, padx=(0, PADDING['small']))
        molecule_box = ttk.Combobox(
            controls,
            textvariable=self.molecule_var,
            values=[m.name for m in displayable_molecules()],
            state="readonly",
            width=SIZES['combo_width'],
        )
        molecule_box.bind("<<ComboboxSelected>>", lambda _e: self._on_molecule())
        molecule_box.pack(side=tk.LEFT, padx=(0, PADDING['large']))

        self.start_button = self._button(controls, "Start", self._on_start, COLORS['success'], COLORS['background'])
        self.start_button.pack(side=tk.LEFT, padx=(0, PADDING['small']))
        self.stop_button = self._button(controls, "Stop", self._on_stop, COLORS['error'], COLORS['background'])
        self.stop_button.config(state=tk.DISABLED)
        self.stop_button.pack(side=tk.LEFT, padx=(0, PADDING['small']))
        self._button(controls, "Step", self._on_step).pack(side=tk.LEFT, padx=(0, PADDING['small']))
        self._button(controls, "Reset", self._on_reset).pack(side=tk.LEFT, padx=(0, PADDING['large']))

        export_frame = tk.Frame(controls, bg=COLORS['background'])
        export_frame.pack(side=tk.LEFT)
        for text, command in (
            ("Heatmap SVG", self._export_heatmap_svg),
            ("Heatmap PNG", self._export_heatmap_png),
            ("Plot SVG", self._export_lineplot_svg),
            ("Plot PNG", self._export_lineplot_png),
            ("HTML", self._export_html),
            ("GIF", self._export_gif),
        ):
            self._button(export_frame, text, command).pack(side=tk.LEFT, padx=(0, PADDING['small']))

        tk.Checkbutton(
            export_frame,
            text="Record",
            variable=self.record_var,
            font=(FONT_FAMILY, FONT_SIZES['label']),
            bg=COLORS['background'],
            fg=COLORS['text_primary'],
            selectcolor=COLORS['accent_light'],
        ).pack(side=tk.LEFT)

        self.status_label = self._label(controls, "Ready", size='caption', fg=COLORS['text_secondary'])
        self.status_label.pack(side=tk.RIGHT, padx=(PADDING['medium'], 0))

    def _create_visual_panel(self, parent):
        """Left panel: heatmap above the tracked-cell chart"""
        panel = tk.Frame(parent, bg=COLORS['panel_bg'], relief=tk.SOLID, bd=BORDER['width'])
        panel.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=(0, MARGINS['panel']))

        display = self.session.config.display_size
        self.heatmap_canvas = FigureCanvasTkAgg(self.heatmap_figure, master=panel)
        heatmap_widget = self.heatmap_canvas.get_tk_widget()
        heatmap_widget.configure(width=display, height=display, bg=COLORS['panel_bg'], highlightthickness=0)
        heatmap_widget.pack(padx=PADDING['medium'], pady=PADDING['medium'])

        self.plot_canvas = FigureCanvasTkAgg(self.plot_figure, master=panel)
        plot_widget = self.plot_canvas.get_tk_widget()
        plot_widget.configure(bg=COLORS['panel_bg'], highlightthickness=0)
        plot_widget.pack(fill=tk.X, padx=PADDING['medium'], pady=(0, PADDING['medium']))

    def _create_sidebar(self, parent):
        sidebar = tk.Frame(parent, bg=COLORS['background'], width=SIZES['sidebar_width'])
        sidebar.pack(side=tk.RIGHT, fill=tk.Y)

        # Brush
        brush = ttk.LabelFrame(sidebar, text="Brush")
        brush.pack(fill=tk.X, pady=(0, PADDING['medium']))
        ttk.Checkbutton(brush, text=LABELS['brush_mode'], variable=self.brush_mode_var,
                        command=self._on_brush_mode).pack(anchor=tk.W)
        ttk.Scale(brush, from_=MIN_BRUSH_RADIUS, to=MAX_BRUSH_RADIUS, orient=tk.HORIZONTAL,
                  length=SIZES['slider_length'], variable=self.brush_radius_var,
                  command=lambda v: self._on_brush_radius(v)).pack(anchor=tk.W)
        self.brush_radius_label = self._label(brush, f"Radius: {self.session.brush_radius}", size='caption')
        self.brush_radius_label.pack(anchor=tk.W)
        self.selection_count_label = self._label(brush, "", size='caption')
        self.selection_count_label.pack(anchor=tk.W)
        ttk.Button(brush, text=LABELS['clear_selection'], command=self._on_clear_selection).pack(anchor=tk.W)

        # Tracking
        tracking = ttk.LabelFrame(sidebar, text="Tracking")
        tracking.pack(fill=tk.X, pady=(0, PADDING['medium']))
        ttk.Checkbutton(tracking, text=LABELS['tracking_mode'], variable=self.tracking_mode_var,
                        command=self._on_tracking_mode).pack(anchor=tk.W)
        self.tracking_count_label = self._label(tracking, "", size='caption')
        self.tracking_count_label.pack(anchor=tk.W)
        # one row per tracked cell: swatch, label, editable concentration
        self.tracked_cells_frame = ttk.Frame(tracking)
        self.tracked_cells_frame.pack(fill=tk.X)
        ttk.Button(tracking, text=LABELS['clear_tracked'], command=self._on_clear_tracked).pack(anchor=tk.W)

        # Time step
        timing = ttk.LabelFrame(sidebar, text="Time Step")
        timing.pack(fill=tk.X, pady=(0, PADDING['medium']))
        ttk.Scale(timing, from_=TIME_STEP_RANGE[0], to=TIME_STEP_RANGE[1], orient=tk.HORIZONTAL,
                  length=SIZES['slider_length'], variable=self.time_step_var,
                  command=lambda v: self._on_time_step(v)).pack(anchor=tk.W)
        self.time_step_label = self._label(timing, f"{self.session.time_step:.2f}", size='caption')
        self.time_step_label.pack(anchor=tk.W)

        notebook = ttk.Notebook(sidebar)
        notebook.pack(fill=tk.BOTH, expand=True)
        inputs = ttk.Frame(notebook)
        rates = ttk.Frame(notebook)
        notebook.add(inputs, text="Inputs")
        notebook.add(rates, text="Rates")

        for mol in INPUT_MOLECULES:
            var = DoubleVar(value=self.session.input_values[mol.name])
            self.input_vars[mol.name] = var
            self._slider_row(inputs, mol.name, var, INPUT_RANGE,
                             lambda v, name=mol.name: self._on_input_value(name, v))

        for name, value in self.session.rates.as_dict().items():
            var = DoubleVar(value=value)
            self.rate_vars[name] = var
            self._slider_row(rates, RATE_LABELS[name], var, RATE_RANGES[name],
                             lambda v, name=name: self._on_rate(name, v))

    def _slider_row(self, parent, text, var, bounds, command):
        row = ttk.Frame(parent)
        row.pack(fill=tk.X)
        ttk.Label(row, text=text, width=16).pack(side=tk.LEFT)
        ttk.Scale(row, from_=bounds[0], to=bounds[1], orient=tk.HORIZONTAL,
                  length=SIZES['slider_length'] - 40, variable=var, command=command).pack(side=tk.LEFT)
        ttk.Label(row, textvariable=var, width=6).pack(side=tk.LEFT)

    # -----------------------
    # Pointer input
    # -----------------------
    def _bind_pointer(self):
        widget = self.heatmap_canvas.get_tk_widget()
        widget.bind("<ButtonPress-1>", lambda e: self._dispatch(PointerKind.PRESS, e))
        widget.bind("<B1-Motion>", lambda e: self._dispatch(PointerKind.MOVE, e))
        widget.bind("<ButtonRelease-1>", lambda e: self._on_release(e))
        widget.bind("<Leave>", lambda e: self._dispatch(PointerKind.LEAVE, e))
        widget.bind("<Configure>", self._on_heatmap_resized, add="+")

    def _dispatch(self, kind: PointerKind, event):
        self.controller.dispatch(PointerEvent(kind, float(event.x), float(event.y)))

    def _on_release(self, event):
        self._dispatch(PointerKind.RELEASE, event)
        # Tk has no separate click event; a release completes one
        self._dispatch(PointerKind.CLICK, event)

    def _on_heatmap_resized(self, event):
        config = self.session.config
        self.controller.mapper = GridMapper(config.grid_size, float(event.width))

    # -----------------------
    # Session callbacks
    # -----------------------
    def _on_session_changed(self, session: VisualizerSession):
        self.heatmap.render(session)
        self.lineplot.draw(session.tracker)
        if self.record_var.get() and session.scheduler.is_running():
            self.recorder.capture()
        self.status_label.config(text=f"Iteration {session.iteration} | {session.molecule.name}")
        self._refresh_tracked_panel()
        self._sync_run_buttons()

    def _refresh_tracked_panel(self):
        selected, tracked = self.session.selection_summary()
        self.selection_count_label.config(text=selected)
        self.tracking_count_label.config(text=tracked)

        rows = self.session.tracked_cell_values()
        if [cell.key for cell, _ in rows] != list(self.cell_vars):
            self._rebuild_tracked_rows([cell for cell, _ in rows])
        focused = self.focus_get()
        for cell, value in rows:
            # leave a box alone while the user is typing in it
            if self.cell_entries[cell.key] is focused:
                continue
            text = CELL_VALUE_FORMAT.format(value)
            self.cell_vars[cell.key].set(text)
            self._shown_values[cell.key] = text

    def _rebuild_tracked_rows(self, cells):
        for child in self.tracked_cells_frame.winfo_children():
            child.destroy()
        self.cell_vars.clear()
        self.cell_entries.clear()
        self._shown_values.clear()
        for cell in cells:
            row = ttk.Frame(self.tracked_cells_frame)
            row.pack(fill=tk.X, pady=1)
            tk.Label(row, width=CELL_SWATCH_WIDTH, bg=cell.color).pack(side=tk.LEFT, padx=(0, PADDING['small']))
            self._label(row, self.session.tracked_cell_label(cell.row, cell.col),
                        size='caption').pack(side=tk.LEFT)
            var = StringVar()
            entry = ttk.Entry(row, textvariable=var, width=CELL_ENTRY_WIDTH)
            entry.pack(side=tk.RIGHT)
            for sequence in ("<Return>", "<FocusOut>"):
                entry.bind(sequence, lambda e, key=cell.key: self._on_edit_cell(key))
            self.cell_vars[cell.key] = var
            self.cell_entries[cell.key] = entry

    def _on_edit_cell(self, key):
        if key not in self.cell_vars:
            return
        text = self.cell_vars[key].get().strip()
        if text == self._shown_values.get(key):
            return
        try:
            value = float(text)
            self.session.edit_cell(key[0], key[1], value)
        except ValueError as e:
            # restore first: the dialog takes focus and fires FocusOut again
            self.cell_vars[key].set(self._shown_values.get(key, ""))
            messagebox.showerror("Invalid value", f"Cell ({key[0]},{key[1]}): {e}")
            return
        self._shown_values[key] = text

    def _sync_run_buttons(self):
        running = self.session.scheduler.is_running()
        self.start_button.config(state=tk.DISABLED if running else tk.NORMAL)
        self.stop_button.config(state=tk.NORMAL if running else tk.DISABLED)

    def _on_molecule(self):
        self.session.set_molecule(self.molecule_var.get())

    def _on_start(self):
        self.session.start()
        self._sync_run_buttons()

    def _on_stop(self):
        self.session.stop()
        self._sync_run_buttons()

    def _on_step(self):
        self.session.step()
        self._sync_run_buttons()

    def _on_reset(self):
        self.session.stop()
        if self.session.reset():
            for var in self.input_vars.values():
                var.set(0.0)
            self.recorder.clear()
        self._sync_run_buttons()

    def _on_brush_mode(self):
        self.session.brush_mode = bool(self.brush_mode_var.get())

    def _on_tracking_mode(self):
        self.session.tracking_mode = bool(self.tracking_mode_var.get())

    def _on_brush_radius(self, value):
        self.session.set_brush_radius(round(float(value)))
        self.brush_radius_label.config(text=f"Radius: {self.session.brush_radius}")

    def _on_clear_selection(self):
        self.session.clear_selection()

    def _on_clear_tracked(self):
        self.session.clear_tracked()

    def _on_time_step(self, value):
        dt = round(float(value), 2)
        self.session.set_time_step(dt)
        self.time_step_label.config(text=f"{dt:.2f}")

    def _on_input_value(self, name: str, value):
        self.session.set_input_value(name, round(float(value), 2))
        self.session.apply_inputs()

    def _on_rate(self, name: str, value):
        self.session.set_rate_constant(name, float(value))

    # -----------------------
    # Exports
    # -----------------------
    def _exported(self, path: Optional[str]):
        if path:
            self.status_label.config(text=f"Saved {os.path.basename(path)}")

    def _export_heatmap_svg(self):
        self._exported(safe_export(self.session, export_heatmap_svg, self.session, self.export_dir,
                                   self.session.config.heatmap_size))

    def _export_heatmap_png(self):
        self._exported(safe_export(self.session, export_heatmap_png, self.session, self.heatmap, self.export_dir,
                                   self.session.config.heatmap_size))

    def _export_lineplot_svg(self):
        self._exported(safe_export(self.session, export_lineplot_svg, self.session, self.export_dir))

    def _export_lineplot_png(self):
        self._exported(safe_export(self.session, export_lineplot_png, self.session, self.lineplot, self.export_dir))

    def _export_html(self):
        filename = filedialog.asksaveasfilename(
            defaultextension=".html",
            filetypes=[("HTML files", "*.html"), ("All files", "*.*")],
            initialfile=f"ecm_timeseries_{now_str()}.html",
            title="Export tracked cells"
        )
        if filename:
            self._exported(safe_export(self.session, export_timeseries_to_plotly_html, self.session, filename))

    def _export_gif(self):
        if not len(self.recorder):
            messagebox.showwarning("No Frames", "Enable Record and run the simulation first")
            return
        filename = filedialog.asksaveasfilename(
            defaultextension=".gif",
            filetypes=[("GIF files", "*.gif"), ("All files", "*.*")],
            initialfile=f"ecm_heatmap_{now_str()}.gif",
            title="Export heatmap animation"
        )
        if filename:
            self._exported(safe_export(self.session, export_frames_to_gif, list(self.recorder.frames), filename))


def main(session: Optional[VisualizerSession] = None):
    """Launch the visualizer window"""
    if session is None:
        from engine.reference_engine import ReferenceEngine
        session = VisualizerSession(engine=ReferenceEngine())
    app = VisualizerGUI(session)
    app.mainloop()


if __name__ == "__main__":
    main()
