"""
Clustering Stepper – a Tkinter front end that runs DBSCAN or K-Means one
step at a time on synthetic 2-D data.

Mouse
=====
* **Left drag** — paint new points with the brush.
* **Right drag** — pan the view.
* **Wheel** — zoom around the pointer.

Colours
=======
* **Unvisited / unclassified** (grey), **noise** (vermillion), clusters from
  a colour-blind friendly palette. The point in focus gets an ε halo.

Run with:
    python -m clusterstep.app
"""

import logging
import tkinter as tk
from tkinter import ttk, messagebox

import matplotlib
matplotlib.use("TkAgg")
from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from clusterstep import config
from clusterstep.config import Algorithm, RunConfig, Shape
from clusterstep.controller import RunController
from clusterstep.datasets import generate_linear
from clusterstep.dbscan import Phase
from clusterstep.exceptions import ConfigurationError
from clusterstep.geometry import NOISE, ViewTransform
from clusterstep.regression import fit_line

logger = logging.getLogger(__name__)

# =============================================================================
# Main application
# =============================================================================

class ClusteringStepper(tk.Tk):
    PAD = 40
    RADIUS = 5

    TYPE_COLOURS = {
        "noise": "#D55E00",      # vermillion
        "unvisited": "#999999",  # grey
        "focus": "#E69F00",      # orange outline
    }

    CLUSTER_PALETTE = [
        "#0072B2", "#009E73", "#CC79A7", "#56B4E9", "#F0E442",
        "#882255", "#44AA99", "#AA4499", "#117733", "#332288",
    ]

    def __init__(self):
        super().__init__()
        self.title("Clustering Stepper")
        self.geometry("1200x650")

        # Tk variables
        self.algorithm = tk.StringVar(value=Algorithm.DBSCAN.value)
        self.shape = tk.StringVar(value=Shape.BLOBS.value)
        self.point_count = tk.IntVar(value=config.DEFAULT_POINT_COUNT)
        self.eps = tk.DoubleVar(value=config.DEFAULT_EPSILON)
        self.min_pts = tk.IntVar(value=config.DEFAULT_MIN_POINTS)
        self.k = tk.IntVar(value=config.DEFAULT_K)
        self.speed = tk.DoubleVar(value=config.DEFAULT_SPEED)
        self.brush = tk.DoubleVar(value=config.DEFAULT_BRUSH_RADIUS)

        self.transform = ViewTransform(self.PAD, self.PAD, 1.0)
        self._pan_from = None

        self._build_ui()
        self.controller = RunController(self._read_config(), scheduler=self, on_tick=self._on_tick)
        self.after(100, self._fit_view)

    # ---------------------------------------------------------------- UI
    def _build_ui(self):
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=8)
        self.grid_columnconfigure(1, weight=2)

        self.canvas = tk.Canvas(self, bg="white")
        self.canvas.grid(row=0, column=0, sticky="nsew")
        self.canvas.bind("<ButtonPress-1>", self._on_brush)
        self.canvas.bind("<B1-Motion>", self._on_brush)
        self.canvas.bind("<ButtonPress-3>", self._on_pan_start)
        self.canvas.bind("<B3-Motion>", self._on_pan)
        self.canvas.bind("<MouseWheel>", lambda e: self._on_zoom(e, 1 if e.delta > 0 else -1))
        self.canvas.bind("<Button-4>", lambda e: self._on_zoom(e, 1))
        self.canvas.bind("<Button-5>", lambda e: self._on_zoom(e, -1))

        ctrl = ttk.Frame(self)
        ctrl.grid(row=0, column=1, sticky="ns", padx=6, pady=6)

        ttk.Label(ctrl, text="Algorithm:").pack(anchor="w")
        cmb = ttk.Combobox(ctrl, textvariable=self.algorithm, state="readonly", width=12,
                           values=[a.value for a in Algorithm])
        cmb.pack(anchor="w", pady=(0, 6))
        cmb.bind("<<ComboboxSelected>>", lambda _: self._apply_config())

        ttk.Label(ctrl, text="Dataset:").pack(anchor="w")
        cmb = ttk.Combobox(ctrl, textvariable=self.shape, state="readonly", width=12,
                           values=[s.value for s in Shape])
        cmb.pack(anchor="w", pady=(0, 6))
        cmb.bind("<<ComboboxSelected>>", lambda _: self._apply_config())

        ttk.Label(ctrl, text="Dataset size:").pack(anchor="w")
        ds_row = ttk.Frame(ctrl); ds_row.pack(anchor="w", pady=(0, 6))
        ttk.Spinbox(ds_row, from_=1, to=1000, textvariable=self.point_count, width=5).pack(side="left")
        ttk.Button(ds_row, text="Apply", command=self._apply_config).pack(side="left", padx=4)

        self._slider(ctrl, "ε (eps)", self.eps, 5, 150, "{:.0f}")
        self._slider(ctrl, "minPts", self.min_pts, 1, 10, "{:.0f}", integer=True)
        self._slider(ctrl, "k", self.k, 1, 10, "{:.0f}", integer=True)
        self._slider(ctrl, "Speed (steps/s)", self.speed, 0.5, 20, "{:.1f}", on_change=self._apply_speed)
        self._slider(ctrl, "Brush radius", self.brush, 0, 60, "{:.0f}", on_change=lambda: None)

        nav = ttk.LabelFrame(ctrl, text="Navigation")
        nav.pack(anchor="w", pady=8, fill="x")
        btn_width = 16
        self.run_btn = ttk.Button(nav, text="Start ▶︎", command=self._toggle_run, width=btn_width)
        self.run_btn.grid(row=0, column=0, padx=2, pady=2)
        ttk.Button(nav, text="Step ▶︎|", command=self._step, width=btn_width).grid(row=0, column=1, padx=2, pady=2)
        ttk.Button(nav, text="◀︎ Previous", command=self._step_back, width=btn_width).grid(row=1, column=0, padx=2, pady=2)
        ttk.Button(nav, text="Fast-forward ⏩", command=self._fast_forward, width=btn_width).grid(row=1, column=1, padx=2, pady=2)
        ttk.Button(nav, text="Reset", command=self._reset, width=btn_width).grid(row=2, column=0, padx=2, pady=2)
        ttk.Button(nav, text="Linear regression", command=lambda: RegressionWindow(self),
                   width=btn_width).grid(row=2, column=1, padx=2, pady=2)

        self.status_lbl = ttk.Label(ctrl, text="")
        self.status_lbl.pack(anchor="w", pady=(4, 4))

        ttk.Label(ctrl, text="Legend:").pack(anchor="w")
        self.legend_frame = ttk.Frame(ctrl); self.legend_frame.pack(anchor="w")

        ttk.Label(ctrl, text="Step explanation:").pack(anchor="w", pady=(8, 0))
        self.explanation = tk.Text(ctrl, width=34, height=8, wrap="word", state="disabled", font=("Arial", 9))
        self.explanation.pack()

    def _slider(self, parent, text, var, lo, hi, fmt, integer=False, on_change=None):
        ttk.Label(parent, text=text).pack(anchor="w", pady=(4, 0))
        row = ttk.Frame(parent); row.pack(anchor="w")
        lbl = ttk.Label(row, text=fmt.format(var.get()))

        def changed(v):
            value = round(float(v)) if integer else float(v)
            var.set(value)
            lbl.config(text=fmt.format(value))
            (on_change or self._apply_config)()

        ttk.Scale(row, from_=lo, to=hi, length=140, orient="horizontal", variable=var,
                  command=changed).pack(side="left")
        lbl.pack(side="left", padx=4)

    # ------------------------------------------------ Config plumbing
    def _read_config(self) -> RunConfig:
        return RunConfig(
            algorithm=Algorithm(self.algorithm.get()),
            shape=Shape(self.shape.get()),
            point_count=self.point_count.get(),
            epsilon=self.eps.get(),
            min_points=int(self.min_pts.get()),
            k=int(self.k.get()),
            speed=self.speed.get(),
            brush_radius=self.brush.get(),
        )

    def _apply_config(self):
        try:
            self.controller.reconfigure(self._read_config())
        except (ConfigurationError, tk.TclError) as exc:
            messagebox.showerror("Invalid setting", str(exc))

    def _apply_speed(self):
        try:
            self.controller.set_speed(self.speed.get())
        except ConfigurationError as exc:
            messagebox.showerror("Invalid setting", str(exc))

    # ------------------------------------------------ Controls
    def _toggle_run(self):
        self.controller.toggle()
        self._refresh()

    def _step(self):
        self.controller.step_once()

    def _step_back(self):
        if not self.controller.step_back():
            self._explain("Nothing to undo.")

    def _fast_forward(self):
        steps = self.controller.fast_forward()
        logger.info("Fast-forwarded %d steps", steps)

    def _reset(self):
        self.transform = ViewTransform(self.PAD, self.PAD, self.transform.k)
        self.controller.reset()

    def _on_tick(self, _controller):
        self._refresh()

    # ------------------------------------------------ Mouse
    def _on_brush(self, event):
        center = self.transform.invert(event.x, event.y)
        try:
            self.controller.inject(center, self.transform, self.brush.get())
        except ConfigurationError as exc:
            messagebox.showerror("Invalid brush", str(exc))

    def _on_pan_start(self, event):
        self._pan_from = (event.x, event.y)

    def _on_pan(self, event):
        if self._pan_from is None:
            return
        x0, y0 = self._pan_from
        self.transform = self.transform.panned(event.x - x0, event.y - y0)
        self._pan_from = (event.x, event.y)
        self._refresh()

    def _on_zoom(self, event, direction):
        factor = 1.1 if direction > 0 else 1 / 1.1
        self.transform = self.transform.zoomed(factor, event.x, event.y)
        self._refresh()

    def _fit_view(self):
        w = max(self.canvas.winfo_width() - 2 * self.PAD, 1)
        h = max(self.canvas.winfo_height() - 2 * self.PAD, 1)
        k = min(w / config.DOMAIN_WIDTH, h / config.DOMAIN_HEIGHT)
        self.transform = ViewTransform(self.PAD, self.PAD, k)
        self._refresh()

    # ------------------------------------------------ Drawing
    def _colour(self, cluster_id):
        if cluster_id is None:
            return self.TYPE_COLOURS["unvisited"]
        if cluster_id == NOISE:
            return self.TYPE_COLOURS["noise"]
        return self.CLUSTER_PALETTE[(cluster_id - 1) % len(self.CLUSTER_PALETTE)]

    def _refresh(self):
        self._draw_points()
        self._update_legend()
        self._explain(self._describe())
        ctl = self.controller
        self.run_btn.config(text="Pause ⏸" if ctl.is_running else "Start ▶︎")
        self.status_lbl.config(text=f"Step {ctl.iteration} · clusters {ctl.clusters_found} · "
                                    f"{len(ctl.dataset)} points")

    def _draw_points(self):
        self.canvas.delete("all")
        r = self.RADIUS
        ctl = self.controller
        for p in ctl.dataset:
            cx, cy = self.transform.apply(p.x, p.y)
            self.canvas.create_oval(cx - r, cy - r, cx + r, cy + r, fill=self._colour(p.cluster_id),
                                    outline="black", width=1, tags="point")

        if ctl.focus is not None:
            self._halo(ctl.dataset[ctl.focus])

        if Algorithm(ctl.config.algorithm) == Algorithm.KMEANS:
            for i, (x, y) in enumerate(ctl.state.centroids):
                cx, cy = self.transform.apply(x, y)
                self.canvas.create_rectangle(cx - 7, cy - 7, cx + 7, cy + 7, fill=self._colour(i + 1),
                                             outline="black", width=2, tags="centroid")

    def _halo(self, p):
        cx, cy = self.transform.apply(p.x, p.y)
        rr = self.controller.config.epsilon * self.transform.k
        self.canvas.create_oval(cx - rr, cy - rr, cx + rr, cy + rr,
                                outline="gray", dash=(2, 2), width=1.5, tags="halo")
        r = self.RADIUS + 2
        self.canvas.create_oval(cx - r, cy - r, cx + r, cy + r,
                                outline=self.TYPE_COLOURS["focus"], width=3, tags="halo")

    # ------------------------------------------------ Legend & explanation
    def _update_legend(self):
        for w in self.legend_frame.winfo_children():
            w.destroy()
        rows = [("Unvisited", self.TYPE_COLOURS["unvisited"]), ("Noise", self.TYPE_COLOURS["noise"])]
        rows += [(f"C{cid}", self._colour(cid)) for cid in range(1, self.controller.clusters_found + 1)]
        for text, colour in rows[:12]:
            row = ttk.Frame(self.legend_frame); row.pack(anchor="w")
            tk.Canvas(row, width=12, height=12, bg=colour, highlightthickness=1,
                      highlightbackground="black").pack(side="left")
            ttk.Label(row, text=text).pack(side="left", padx=4)

    def _describe(self) -> str:
        ctl = self.controller
        state = ctl.state
        if Algorithm(ctl.config.algorithm) == Algorithm.KMEANS:
            if state.iteration == 0:
                return "Centroids placed at random. Step to assign points."
            return f"Iteration {state.iteration}: points moved to their nearest centroid, centroids re-centred."
        if state.phase == Phase.DONE:
            noise = sum(1 for p in ctl.dataset if p.cluster_id == NOISE)
            return f"Done: {state.cluster_counter} clusters, {noise} noise points."
        if state.phase == Phase.CHECK_NEIGHBORS:
            return f"Point {state.cursor} picked; next step counts its ε-neighbours."
        if state.phase == Phase.EXPAND_CLUSTER:
            return f"Expanding cluster {state.cluster_counter}: {len(state.queue)} points queued."
        if ctl.iteration == 0:
            return "Dataset reset."
        return "Looking for the next unvisited point."

    def _explain(self, text):
        self.explanation.config(state="normal"); self.explanation.delete("1.0", tk.END)
        self.explanation.insert(tk.END, text); self.explanation.config(state="disabled")


# =============================================================================
# Linear regression window
# =============================================================================

class RegressionWindow(tk.Toplevel):
    def __init__(self, master):
        super().__init__(master)
        self.title("Linear regression")
        self.geometry("800x600")

        self.n_points = tk.IntVar(value=config.DEFAULT_REGRESSION_POINTS)
        self.noise = tk.DoubleVar(value=config.DEFAULT_REGRESSION_NOISE)

        ctrl = ttk.Frame(self)
        ctrl.pack(side=tk.LEFT, fill=tk.Y, padx=10, pady=10)
        for text, var in [("# points", self.n_points), ("noise", self.noise)]:
            row = ttk.Frame(ctrl)
            row.pack(fill=tk.X, pady=2)
            ttk.Label(row, text=text, width=10).pack(side=tk.LEFT)
            ttk.Entry(row, textvariable=var, width=6).pack(side=tk.LEFT)
        ttk.Button(ctrl, text="Generate", command=self.generate_data).pack(pady=5)
        self.stats = ttk.Label(ctrl, text="", justify=tk.LEFT)
        self.stats.pack(pady=10)

        self.fig = Figure(figsize=(6, 6))
        self.ax = self.fig.add_subplot(111)
        self.canvas = FigureCanvasTkAgg(self.fig, master=self)
        self.canvas.get_tk_widget().pack(side=tk.RIGHT, fill=tk.BOTH, expand=True)

        self.generate_data()

    def generate_data(self):
        try:
            points = generate_linear(self.n_points.get(), self.noise.get())
            fit = fit_line(points)
        except (ConfigurationError, tk.TclError) as exc:
            messagebox.showerror("Invalid setting", str(exc), parent=self)
            return

        xs = [p.x for p in points]
        self.ax.clear()
        self.ax.set_title(fit.equation())
        self.ax.scatter(xs, [p.y for p in points], s=20, alpha=0.6)
        line_x = [min(xs), max(xs)]
        self.ax.plot(line_x, fit.predict(line_x), color="#D55E00", linewidth=2)
        self.ax.set_xlabel("x")
        self.ax.set_ylabel("y")
        self.canvas.draw()
        self.stats.config(text=f"Slope: {fit.slope:.4f}\nIntercept: {fit.intercept:.4f}\nR²: {fit.r_squared:.4f}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    ClusteringStepper().mainloop()


# =============================================================================
if __name__ == "__main__":
    main()
