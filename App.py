"""
Monte Carlo Explorer — Pi & Newton (UA)
1. Оцінка числа π методом Монте-Карло (пакетна, у пулі потоків).
2. Метод Ньютона для пошуку кореня f(x) = 0.
"""
import sys
import os
import logging
import tkinter as tk
from tkinter import messagebox, BOTH, YES, LEFT, X, Y, DISABLED
import threading
import math
import time

logger = logging.getLogger(__name__)

REQUIRED_LIBS = ['numpy', 'matplotlib', 'ttkbootstrap']

def check_libraries():
    missing = []
    for lib in REQUIRED_LIBS:
        try:
            __import__(lib)
        except ImportError:
            missing.append(lib)
    return missing

missing_libs = check_libraries()
if missing_libs:
    root = tk.Tk(); root.withdraw()
    tk.messagebox.showerror("Помилка", f"Відсутні бібліотеки: {', '.join(missing_libs)}")
    sys.exit(1)

import numpy as np
import matplotlib
matplotlib.use("TkAgg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
import ttkbootstrap as tb
import tkinter.ttk as ttk

# --- ІМПОРТ МОДУЛІВ ---
try:
    from Pi import PiEngine
    from Newton import NewtonEngine, NewtonError
except ImportError as e:
    root = tk.Tk(); root.withdraw()
    tk.messagebox.showerror("Помилка імпорту", f"Не знайдено файли модулів.\nДеталі: {e}")
    sys.exit(1)

MODE_PI = "π (пі) - одиничний квадрат"
MODE_NEWTON = "Метод Ньютона f(x) = 0"


class MonteCarloApp:
    def __init__(self, root):
        self.root = root
        self.root.title("Monte-Carlo App")

        icon_path = os.path.join(os.path.dirname(__file__), "icon.png")
        if os.path.exists(icon_path):
            try:
                self.root.iconphoto(False, tk.PhotoImage(file=icon_path))
            except tk.TclError:
                logger.warning("Не вдалося завантажити іконку %s", icon_path)

        self.style = tb.Style(theme='darkly')
        try: self.root.state('zoomed')
        except tk.TclError: self.root.geometry("1200x800")

        self.is_running = False
        self.stop_flag = threading.Event()
        self.data_lock = threading.Lock()

        self.batch_results = []
        self.pi_last = None  # лише останній пакет точок для scatter
        self.newton_path = []

        self.progress_var = tk.StringVar(value="Готовий до запуску.")
        self.result_var = tk.StringVar(value="Результат: —")

        self._build_ui()

    def _build_ui(self):
        main = tb.Frame(self.root)
        main.pack(fill=BOTH, expand=YES, padx=12, pady=12)

        left = tb.Frame(main, width=380)
        left.pack(side=LEFT, fill=Y, padx=(0, 12))
        left.pack_propagate(False)

        tb.Label(left, text="Monte Carlo Explorer", font=("Segoe UI", 16, "bold")).pack(pady=(6, 8))
        tb.Label(left, text="Pi & Newton (UA)", font=("Segoe UI", 10, "italic"), bootstyle="info").pack(pady=(0, 8))

        tb.Label(left, text="Режим моделювання").pack(anchor='w')
        self.mode = ttk.Combobox(left, values=[MODE_PI, MODE_NEWTON], state="readonly", font=("Segoe UI", 10))
        self.mode.current(0)
        self.mode.pack(fill='x', pady=4)
        self.mode.bind("<<ComboboxSelected>>", lambda e: self._update_frames())

        self.pi_frame = tb.Frame(left)
        self.iter_entry = self._add_field(self.pi_frame, "Кількість ітерацій (N)", "1000000")
        self.batch_entry = self._add_field(self.pi_frame, "Розмір пакету (Batch size)", "10000")
        self.seed_entry = self._add_field(self.pi_frame, "Seed (пусто = випадковий)", "")

        self.newton_frame = tb.Frame(left)
        tb.Label(self.newton_frame, text="Параметри Ньютона", bootstyle="warning").pack(anchor='w')
        self.fx_entry = self._add_field(self.newton_frame, "f(x)", "x**2 - 2")
        f = tb.Frame(self.newton_frame); f.pack(fill='x', pady=4)
        self.x0_entry = self._add_field(f, "x0", "1.0", LEFT)
        self.maxit_entry = self._add_field(f, "max", "50", LEFT)

        btn_row = tb.Frame(left); btn_row.pack(side=tk.BOTTOM, fill='x', pady=(15, 4))
        self.run_btn = tb.Button(btn_row, text="Запустити", bootstyle="success", command=self.start)
        self.run_btn.pack(side=LEFT, expand=YES, fill=X, padx=(0, 6))
        self.stop_btn = tb.Button(btn_row, text="Стоп", bootstyle="danger", command=self.stop, state=DISABLED)
        self.stop_btn.pack(side=LEFT, expand=YES, fill=X, padx=(6, 0))

        self.stats_text = tk.Text(left, height=8, bg='#1a1a1a', fg='white', bd=0, font=("Consolas", 9))
        self.stats_text.pack(side=tk.BOTTOM, fill='both', pady=(4, 6))
        tb.Label(left, text="Лог").pack(side=tk.BOTTOM, anchor='w', pady=(8, 0))

        self._init_plots(main)
        self._update_frames()

    def _add_field(self, parent, label, default, side=None):
        if side == LEFT:
            tb.Label(parent, text=label).pack(side=LEFT, padx=(0, 4))
            e = tb.Entry(parent, width=8); e.insert(0, default); e.pack(side=LEFT, padx=(0, 8))
            return e
        else:
            tb.Label(parent, text=label).pack(anchor='w')
            e = tb.Entry(parent); e.insert(0, default); e.pack(fill='x', pady=2)
            return e

    def _init_plots(self, parent):
        right = tb.Frame(parent); right.pack(side=LEFT, fill=BOTH, expand=YES)

        # Верхній графік - Збіжність
        self.fig_conv, self.ax_conv = self._create_fig(7, 4)
        self.line_conv, = self.ax_conv.plot([], [], color='#00BFFF', lw=2)
        self.ref_conv = self.ax_conv.axhline(math.pi, color='#ff4444', lw=1, linestyle='--')
        self.ax_conv.set_title("Збіжність оцінки (Convergence)", color='white', fontsize=10)
        self.canvas_conv = FigureCanvasTkAgg(self.fig_conv, master=right)
        self.canvas_conv.get_tk_widget().pack(fill=BOTH, expand=YES, padx=6, pady=(6, 2))

        # Нижній - точки (π) або шлях ітерацій (Ньютон)
        self.fig_anim, self.ax_anim = self._create_fig(5, 4)
        self.canvas_anim = FigureCanvasTkAgg(self.fig_anim, master=right)
        self.canvas_anim.get_tk_widget().pack(fill=BOTH, expand=YES, padx=6, pady=(2, 6))

        tb.Label(right, textvariable=self.progress_var, font=("Segoe UI", 10)).pack(anchor='w', padx=8, pady=5)
        tb.Label(right, textvariable=self.result_var, font=("Segoe UI", 12, "bold"), bootstyle="inverse-primary").pack(anchor='w', padx=8, pady=(0, 5))

    def _create_fig(self, w, h):
        fig, ax = plt.subplots(figsize=(w, h))
        fig.patch.set_facecolor('#2b2b2b')
        ax.set_facecolor('#1e1e1e')
        ax.tick_params(colors='white')
        return fig, ax

    def _update_frames(self):
        for f in [self.pi_frame, self.newton_frame]: f.pack_forget()
        if self.mode.get() == MODE_NEWTON: self.newton_frame.pack(fill='x', pady=6)
        else: self.pi_frame.pack(fill='x', pady=6)

    def log(self, msg):
        logger.info(msg)
        self.root.after(0, lambda: self._log_safe(msg))

    def _log_safe(self, msg):
        self.stats_text.insert(tk.END, f"> {msg}\n"); self.stats_text.see(tk.END)

    def start(self):
        if self.is_running: return
        self.stats_text.delete('1.0', tk.END)

        mode = self.mode.get()
        try:
            if mode == MODE_NEWTON:
                f = NewtonEngine.parse(self.fx_entry.get())
                x0 = float(self.x0_entry.get()); max_iter = int(self.maxit_entry.get())
                target, args = self._run_newton, (f, x0, max_iter)
            else:
                N = int(self.iter_entry.get()); batch = int(self.batch_entry.get())
                seed_txt = self.seed_entry.get().strip()
                seed = int(seed_txt) if seed_txt else None
                next(PiEngine.iter_chunks(N, batch))
                target, args = self._run_simulation, (N, batch, seed)
        except ValueError as e:
            self.log(f"Помилка параметрів: {e}"); return

        self.is_running = True; self.stop_flag.clear()
        self.run_btn.state(['disabled']); self.stop_btn.state(['!disabled'])

        self.batch_results = []
        self.pi_last = None
        self.newton_path = []

        threading.Thread(target=target, args=args, daemon=True).start()

    def stop(self):
        if self.is_running: self.stop_flag.set(); self.log("Зупинка...")

    def _run_simulation(self, N, batch, seed):
        self.log(f"Запущено: π, N={N:,}, пакет={batch:,}")
        t0 = time.perf_counter()

        last_update = 0
        cur, est = 0, 0.0

        try:
            for cur, est, vis in PiEngine.run_batches(N, batch, seed=seed, stop=self.stop_flag):
                with self.data_lock:
                    self.batch_results.append((cur, est))
                    if vis is not None:
                        self.pi_last = vis

                if time.time() - last_update > 0.2:
                    self.root.after(0, lambda ci=cur, ce=est: self._update_ui(ci, ce))
                    last_update = time.time()
        except (ValueError, MemoryError) as e:
            logger.exception("Помилка симуляції")
            self.log(f"Помилка: {e}")

        if cur:
            self.log(f"π ≈ {est:.6f} (похибка {abs(est - math.pi):.2e}) за {time.perf_counter() - t0:.2f} с")
        self.root.after(0, lambda ci=cur, ce=est: self._update_ui(ci, ce))
        self.root.after(0, self._finish)

    def _run_newton(self, f, x0, max_iter):
        self.log(f"Запущено: Ньютон, x0={x0}")
        try:
            res = NewtonEngine.solve(f, x0, max_iter=max_iter)
        except (NewtonError, ValueError, OverflowError) as e:
            self.log(f"Помилка: {e}")
            self.root.after(0, self._finish)
            return

        with self.data_lock:
            self.newton_path = res.history
            self.batch_results = list(enumerate(res.history))

        status = "збіжність" if res.converged else "немає збіжності"
        self.log(f"Корінь x ≈ {res.root:.12g} ({status}, {res.iterations} кроків)")
        self.root.after(0, lambda ci=res.iterations, ce=res.root: self._update_ui(ci, ce))
        self.root.after(0, self._finish)

    def _update_ui(self, cur, est):
        if not self.root.winfo_exists(): return
        self.progress_var.set(f"Прогрес: {cur:,}")
        self.result_var.set(f"Результат: {est:.5f}")

        mode = self.mode.get()
        with self.data_lock:
            pts = self.batch_results[::max(1, len(self.batch_results)//300)]

        if pts:
            xs = [p[0] for p in pts]; ys = [p[1] for p in pts]
            self.line_conv.set_data(xs, ys)
            self.ref_conv.set_visible(mode == MODE_PI)
            self.ax_conv.relim(); self.ax_conv.autoscale_view(); self.canvas_conv.draw_idle()

        if mode == MODE_NEWTON:
            with self.data_lock: path = list(self.newton_path)
            if path:
                self.ax_anim.cla(); self.ax_anim.set_facecolor('#1e1e1e')
                self.ax_anim.set_title("Кроки Ньютона |x_k - x*|", color='white', fontsize=8)
                errs = [abs(x - path[-1]) for x in path[:-1]]
                if errs and all(e > 0 for e in errs): self.ax_anim.semilogy(errs, 'o-', color='#9BE77F')
                else: self.ax_anim.plot(path, 'o-', color='#9BE77F')
                self.ax_anim.tick_params(colors='white', labelsize=7)
                self.canvas_anim.draw_idle()
        else:
            with self.data_lock:
                if self.pi_last is not None:
                    chunk = self.pi_last
                    self.ax_anim.cla(); self.ax_anim.set_facecolor('#1e1e1e')
                    self.ax_anim.set_xlim(0, 1); self.ax_anim.set_ylim(0, 1)
                    x, y, ins = chunk
                    c = np.where(ins, '#2ECC71', '#E74C3C')
                    self.ax_anim.scatter(x, y, c=c, s=1); self.canvas_anim.draw_idle()

    def _finish(self):
        if not self.root.winfo_exists(): return
        self.is_running = False
        self.run_btn.state(['!disabled']); self.stop_btn.state(['disabled'])
        self.log("Готово.")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    root = tb.Window(themename="darkly")
    app = MonteCarloApp(root)
    root.mainloop()
