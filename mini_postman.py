import logging
import queue
import threading
import tkinter as tk
from tkinter import ttk, scrolledtext

import ttkbootstrap as tb

import dispatcher
import settings
from param_sync import QueryParam
from session import RequestSession, SendState

STATUS_STYLES = {
    "success": "Success.Status.TLabel",
    "redirect": "Redirect.Status.TLabel",
    "client_error": "ClientError.Status.TLabel",
    "server_error": "ServerError.Status.TLabel",
    "error": "ServerError.Status.TLabel",
}


def _row_to_param(row):
    key, value, note = (list(row) + ["", "", ""])[:3]
    return QueryParam(key, value, note)


class _KVEditor(ttk.Frame):
    """Editable table; calls ``on_change(rows)`` after every commit."""
    def __init__(self, master, title, columns, on_change=None):
        super().__init__(master)
        self.columns = columns
        self.on_change = on_change
        self.toolbar = ttk.Frame(self)
        ttk.Label(self.toolbar, text=title).pack(side="left")
        ttk.Button(self.toolbar, text="+", width=3, command=self._add_and_notify).pack(side="left", padx=(6, 0))
        ttk.Button(self.toolbar, text="−", width=3, command=self.remove_selected).pack(side="left", padx=(3, 6))
        self.toolbar.pack(fill="x", pady=(0, 6))
        self.tree = ttk.Treeview(self, columns=[c.lower() for c in columns], show="headings", height=6)
        for c in columns:
            self.tree.heading(c.lower(), text=c)
            self.tree.column(c.lower(), width=160, anchor="w")
        self.tree.pack(fill="both", expand=True)
        self.tree.bind("<Double-1>", self._edit_cell)
    def add_row(self, *values):
        vals = list(values) + [""] * (len(self.columns) - len(values))
        return self.tree.insert("", "end", values=tuple(vals))
    def _add_and_notify(self):
        self.add_row()
        self._notify()
    def remove_selected(self):
        for iid in self.tree.selection():
            self.tree.delete(iid)
        self._notify()
    def clear(self):
        for iid in self.tree.get_children():
            self.tree.delete(iid)
    def rows(self):
        return [tuple(str(v) for v in self.tree.item(iid, "values")) for iid in self.tree.get_children()]
    def set_rows(self, rows):
        self.clear()
        for r in rows:
            self.add_row(*r)
    def _notify(self):
        if self.on_change:
            self.on_change(self.rows())
    def _edit_cell(self, event):
        if self.tree.identify("region", event.x, event.y) != "cell":
            return
        rowid = self.tree.identify_row(event.y)
        colid = self.tree.identify_column(event.x)
        bbox = self.tree.bbox(rowid, colid) if rowid and colid else None
        if not bbox:
            return
        x, y, w, h = bbox
        col_index = int(colid[1:]) - 1
        old_vals = list(self.tree.item(rowid, "values")) + [""] * len(self.columns)
        old_vals = old_vals[:len(self.columns)]
        entry = ttk.Entry(self.tree)
        entry.insert(0, old_vals[col_index])
        entry.select_range(0, "end")
        entry.focus_set()
        entry.place(x=x, y=y, width=w, height=h)
        def on_commit(*_):
            if not entry.winfo_exists():
                return
            old_vals[col_index] = entry.get()
            entry.destroy()
            self.tree.item(rowid, values=tuple(old_vals))
            self._notify()
        entry.bind("<Return>", on_commit)
        entry.bind("<FocusOut>", on_commit)
        entry.bind("<Escape>", lambda *_: entry.destroy())


class MiniPostman(tk.Tk):
    def __init__(self, config=None):
        super().__init__()
        self.config_data = config or settings.load_settings()
        self.title(f"Mini Postman {settings.__version__}")
        self.geometry(self.config_data["geometry"])
        self.session = RequestSession(
            timeout=float(self.config_data["timeout"]),
            param_slots=int(self.config_data["param_slots"]),
            encode_params=bool(self.config_data["encode_params"]),
            default_headers=self.config_data["default_headers"],
        )
        self.response_queue = queue.Queue()
        self._init_styles()
        self._create_widgets()
        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self.after(100, self._process_queue)
    def _init_styles(self):
        self.style = tb.Style(self.config_data["theme"])
        self.style.configure("Status.TLabel", font=("Segoe UI", 9), padding=2)
        self.style.configure("Success.Status.TLabel", foreground="#eaffea", background="#14532d")
        self.style.configure("Redirect.Status.TLabel", foreground="#eaf2ff", background="#0c4a6e")
        self.style.configure("ClientError.Status.TLabel", foreground="#fff5e6", background="#7c2d12")
        self.style.configure("ServerError.Status.TLabel", foreground="#ffecec", background="#5c1a1a")
    def _create_widgets(self):
        top_frame = ttk.Frame(self, padding=10)
        top_frame.pack(fill=tk.X, side=tk.TOP)
        top_frame.columnconfigure(1, weight=1)
        self.method_var = tk.StringVar(value=self.session.method)
        method_menu = ttk.Combobox(top_frame, textvariable=self.method_var, values=dispatcher.METHODS, state="readonly", width=8)
        method_menu.grid(row=0, column=0, padx=(0, 5))
        method_menu.bind("<<ComboboxSelected>>", lambda e: self._method_changed())
        self.url_var = tk.StringVar(value=self.session.url)
        self.url_entry = ttk.Entry(top_frame, textvariable=self.url_var, font=("Segoe UI", 10))
        self.url_entry.grid(row=0, column=1, sticky="ew")
        self.url_entry.bind("<Return>", lambda e: self.send_request())
        self.send_button = ttk.Button(top_frame, text="Send", command=self.send_request)
        self.send_button.grid(row=0, column=2, padx=(5, 0))

        paned_window = ttk.PanedWindow(self, orient=tk.VERTICAL)
        paned_window.pack(fill=tk.BOTH, expand=True, padx=10, pady=(0, 10))
        req_notebook = ttk.Notebook(paned_window, padding=2)

        self.params_editor = _KVEditor(req_notebook, "Query params", ("Key", "Value", "Description"),
                                       on_change=self._params_changed)
        ttk.Button(self.params_editor.toolbar, text="Import from URL", command=self._import_params).pack(side="right")
        self.params_editor.set_rows(p.as_tuple() for p in self.session.params)
        self.headers_editor = _KVEditor(req_notebook, "Headers", ("Key", "Value"), on_change=self._headers_changed)
        self.headers_editor.set_rows(self.session.headers.items())

        body_frame = ttk.Frame(req_notebook, padding=4)
        self.body_hint = ttk.Label(body_frame, text="Body is only sent for POST or PUT")
        self.body_hint.pack(anchor="w")
        self.body_text = scrolledtext.ScrolledText(body_frame, wrap=tk.WORD, height=5, font=("Consolas", 10))
        self.body_text.pack(fill="both", expand=True)

        auth_frame = ttk.Frame(req_notebook, padding=8)
        ttk.Label(auth_frame, text="Bearer token:").pack(side="left")
        self.token_var = tk.StringVar()
        ttk.Entry(auth_frame, textvariable=self.token_var, show="•").pack(side="left", fill="x", expand=True, padx=(6, 0))

        req_notebook.add(self.params_editor, text="Params")
        req_notebook.add(self.headers_editor, text="Headers")
        req_notebook.add(body_frame, text="Body")
        req_notebook.add(auth_frame, text="Authorization")
        paned_window.add(req_notebook, weight=1)

        res_frame = ttk.Frame(paned_window)
        res_frame.columnconfigure(0, weight=1)
        res_frame.rowconfigure(1, weight=1)
        self.status_label = ttk.Label(res_frame, text="Status: Idle", style="Status.TLabel")
        self.status_label.grid(row=0, column=0, sticky="w", pady=(5, 5))
        res_notebook = ttk.Notebook(res_frame)
        res_notebook.grid(row=1, column=0, sticky="nsew")
        self.response_body_text = scrolledtext.ScrolledText(res_notebook, wrap=tk.WORD, height=5, font=("Consolas", 10))
        self.response_headers_text = scrolledtext.ScrolledText(res_notebook, wrap=tk.WORD, height=5, font=("Consolas", 10))
        res_notebook.add(self.response_body_text, text="Body")
        res_notebook.add(self.response_headers_text, text="Headers")
        paned_window.add(res_frame, weight=2)
        self._method_changed()

    def _method_changed(self):
        self.session.method = self.method_var.get()
        state = "normal" if self.session.method in dispatcher.BODY_METHODS else "disabled"
        self.body_text.configure(state=state)
    def _params_changed(self, rows):
        self.session.url = self.url_var.get()
        self.session.params[:] = [_row_to_param(r) for r in rows]
        self.url_var.set(self.session.notify_param_changed())
    def _import_params(self):
        self.session.url = self.url_var.get()
        self.params_editor.set_rows(p.as_tuple() for p in self.session.load_params_from_url())
    def _headers_changed(self, rows):
        self.session.headers = {r[0]: r[1] for r in rows if len(r) > 1 and r[0].strip()}

    def send_request(self):
        if str(self.send_button["state"]) == "disabled":
            return
        self.session.url = self.url_var.get()
        self.session.method = self.method_var.get()
        self.session.body = self.body_text.get("1.0", "end-1c")
        self.session.auth_token = self.token_var.get()
        spec = self.session.build_spec()
        self.session.state = SendState.IN_FLIGHT
        self.send_button.configure(state="disabled")
        self.status_label.config(text="Status: Sending...", style="Status.TLabel")
        thread = threading.Thread(target=self._send_request_thread, args=(spec,), daemon=True)
        thread.start()
    def _send_request_thread(self, spec):
        self.response_queue.put(self.session.dispatch(spec))
    def _process_queue(self):
        try:
            outcome = self.response_queue.get_nowait()
        except queue.Empty:
            pass
        else:
            self._show_outcome(self.session.accept(outcome))
            self.send_button.configure(state="normal")
        finally:
            self.after(100, self._process_queue)
    def _show_outcome(self, outcome):
        text = f"Status: {outcome.status}"
        if outcome.status_code is not None:
            text += f" | Time: {outcome.elapsed:.2f}s | Size: {outcome.size / 1024:.2f} KB"
        self.status_label.config(text=text, style=STATUS_STYLES[outcome.category])
        self.response_body_text.delete("1.0", tk.END)
        self.response_body_text.insert("1.0", outcome.body)
        self.response_headers_text.delete("1.0", tk.END)
        self.response_headers_text.insert("1.0", outcome.headers_text())
    def _on_close(self):
        self.config_data["geometry"] = self.geometry()
        try:
            settings.save_settings(self.config_data)
        except OSError:
            logging.exception("Failed to save settings")
        self.session.close()
        self.destroy()


def main():
    config = settings.load_settings()
    settings.setup_logging(config["log_level"])
    logging.info("Starting Mini Postman %s", settings.__version__)
    app = MiniPostman(config)
    app.mainloop()


if __name__ == "__main__":
    main()
