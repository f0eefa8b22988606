import logging

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QAbstractItemView, QApplication, QGroupBox, QHBoxLayout, QHeaderView, QLabel,
    QListWidget, QMainWindow, QMessageBox, QPushButton, QSplitter, QTableWidget,
    QTableWidgetItem, QToolBar, QVBoxLayout, QWidget,
)

from roster_manager.data.models import can_edit
from roster_manager.exceptions import GenerationError, PersistenceFailure
from roster_manager.gui.flush_worker import ThreadedFlushExecutor
from roster_manager.gui.roster_table import RosterTable
from roster_manager.logic.cascade import apply_edit, edit_warnings
from roster_manager.logic.evaluator import evaluate, month_summary
from roster_manager.logic.generator import generate_into
from roster_manager.logic.synchronizer import CLEAN, DIRTY, SAVE_FAILED, SAVING, SaveSynchronizer
from roster_manager.models.roster import MonthConfig, build_month_roster
from roster_manager.utils.date_helper import shift_month

logger = logging.getLogger(__name__)

SAVE_STATE_TEXT = {
    CLEAN: "All changes saved",
    DIRTY: "Unsaved changes",
    SAVING: "Saving...",
    SAVE_FAILED: "Save failed - changes kept in memory",
}


class MainWindow(QMainWindow):
    def __init__(self, store, user, settings):
        super().__init__()
        self.setWindowTitle("Ward roster")
        self.resize(1280, 950)

        self.store = store
        self.user = user
        self.settings = settings
        self.editable = can_edit(user.role)
        self.logged_out = False

        self.physicians = store.load_physicians()
        self.config = store.load_config()
        self.roster = build_month_roster(self.config, store.load_month_roster())

        # debounce: one single-shot timer, restarted on every edit
        self._autosave_timer = QTimer(self)
        self._autosave_timer.setSingleShot(True)
        self._autosave_timer.setInterval(settings.autosave_ms)
        self._executor = ThreadedFlushExecutor(self)
        self.sync = SaveSynchronizer(
            snapshot=lambda: self.roster.to_records(),
            save=store.save_month_roster,
            timer=self._autosave_timer,
            executor=self._executor,
        )
        self._autosave_timer.timeout.connect(self.sync.on_timer_elapsed)
        self.sync.listeners.append(self._on_save_state)

        self._build_ui()
        self.refresh()

    # ---------------- UI ----------------
    def _build_ui(self):
        tb = QToolBar()
        self.addToolBar(tb)

        btn_prev = QPushButton("< Prev")
        btn_prev.clicked.connect(self.prev_month)
        tb.addWidget(btn_prev)

        self.month_label = QLabel("")
        self.month_label.setStyleSheet("font-weight:600; padding:0 8px;")
        tb.addWidget(self.month_label)

        btn_next = QPushButton("Next >")
        btn_next.clicked.connect(self.next_month)
        tb.addWidget(btn_next)

        tb.addSeparator()

        if self.editable:
            btn_gen = QPushButton("Generate month")
            btn_gen.setToolTip("Replace every assignment of the visible month")
            btn_gen.clicked.connect(self.run_generate)
            tb.addWidget(btn_gen)

            btn_clear = QPushButton("Clear month")
            btn_clear.clicked.connect(self.clear_month)
            tb.addWidget(btn_clear)

        btn_save = QPushButton("Save now")
        btn_save.clicked.connect(self.save_now)
        btn_save.setEnabled(self.editable)
        tb.addWidget(btn_save)

        btn_logout = QPushButton("Log out")
        btn_logout.clicked.connect(self.logout)
        tb.addWidget(btn_logout)

        self.act_toggle_left = QAction("Report panel", self)
        self.act_toggle_left.setCheckable(True)
        self.act_toggle_left.setChecked(True)
        self.act_toggle_left.toggled.connect(self.toggle_left_panel)
        tb.addAction(self.act_toggle_left)

        central = QWidget()
        self.setCentralWidget(central)
        root = QHBoxLayout(central)
        root.setContentsMargins(0, 0, 0, 0)

        splitter = QSplitter(Qt.Horizontal)
        root.addWidget(splitter)
        splitter.setHandleWidth(2)

        # ----- left: fairness + violations -----
        left_container = QWidget()
        left = QVBoxLayout(left_container)

        summary_box = QGroupBox("Shifts this month")
        sb = QVBoxLayout(summary_box)
        self.summary_table = QTableWidget(0, 5)
        self.summary_table.setHorizontalHeaderLabels(["Name", "Total", "Holiday", "ICU", "Gen"])
        self.summary_table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.summary_table.verticalHeader().setVisible(False)
        self.summary_table.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)
        sb.addWidget(self.summary_table)
        left.addWidget(summary_box)

        violations_box = QGroupBox("Rule check")
        vb = QVBoxLayout(violations_box)
        self.violation_list = QListWidget()
        vb.addWidget(self.violation_list)
        left.addWidget(violations_box)

        left_container.setMinimumWidth(320)
        left_container.setMaximumWidth(360)

        # ----- right: the roster grid -----
        self.table = RosterTable(on_cell_edited=self.on_cell_edited)

        splitter.addWidget(left_container)
        splitter.addWidget(self.table)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        splitter.setCollapsible(0, True)
        splitter.setCollapsible(1, False)
        splitter.setSizes([left_container.minimumWidth(), 10_000])
        self._splitter = splitter
        self._left_container = left_container

        self.status = self.statusBar()
        self.save_label = QLabel(SAVE_STATE_TEXT[CLEAN])
        self.status.addPermanentWidget(self.save_label)

    # ---------------- binding ----------------
    def refresh(self):
        self.table.render_month(self.roster, self.physicians, read_only=not self.editable)
        self.month_label.setText(f"{self.config.year}-{self.config.month:02d}  ({len(self.roster)} days)")
        self._refresh_report()
        active = sum(1 for p in self.physicians if p.active)
        who = self.user.name or self.user.username
        self.status.showMessage(f"{who} ({self.user.role}) - {active} active physician(s)")

    def _refresh_report(self):
        result = evaluate(self.roster, self.physicians)
        self.violation_list.clear()
        for v in result.violations:
            self.violation_list.addItem(f"{v.date or '-'}  {v.message}")
        if result.is_valid:
            self.violation_list.addItem(f"No violations ({result.unfilled} empty slot(s))")

        rows = month_summary(self.roster, self.physicians)
        self.summary_table.setRowCount(0)
        for row in rows:
            r = self.summary_table.rowCount()
            self.summary_table.insertRow(r)
            name = row.name + (" *" if row.consecutive_days else "")
            values = [name, row.total_shifts, row.holiday_shifts, row.icu_shifts, row.general_shifts]
            for c, value in enumerate(values):
                item = QTableWidgetItem(str(value))
                if row.consecutive_days:
                    item.setToolTip("works on consecutive days")
                self.summary_table.setItem(r, c, item)

    def _on_save_state(self, state):
        self.save_label.setText(SAVE_STATE_TEXT.get(state, state))
        if state == SAVE_FAILED:
            self.save_label.setStyleSheet("color:#b91c1c; font-weight:600;")
        else:
            self.save_label.setStyleSheet("")

    # ---------------- edits ----------------
    def on_cell_edited(self, date_key, shift, ward, physician_id):
        if not self.editable:
            return
        apply_edit(self.roster, date_key, shift, ward, physician_id)
        self.sync.notify_edit()
        warnings = edit_warnings(self.roster, date_key, self.physicians)
        if warnings:
            self.status.showMessage("; ".join(w.message for w in warnings), 6000)
        # the combo that fired is replaced, so redraw after the signal returns
        day = self.roster.day(date_key)
        QTimer.singleShot(0, lambda: (self.table.refresh_day(day), self._refresh_report()))

    def run_generate(self):
        if not self.editable:
            return
        mb = QMessageBox(self)
        mb.setIcon(QMessageBox.Question)
        mb.setWindowTitle("Generate")
        mb.setText(f"{self.config.year}-{self.config.month:02d}\n\n"
                   "Replace every assignment of this month?")
        mb.setStandardButtons(QMessageBox.Yes | QMessageBox.No)
        mb.setDefaultButton(QMessageBox.No)
        if mb.exec() != QMessageBox.Yes:
            self.status.showMessage("Generation cancelled.", 3000)
            return

        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            generate_into(self.roster, self.physicians, self.config, self.settings.ranking_policy())
        except GenerationError as e:
            logger.warning("generation failed: %s", e)
            QMessageBox.warning(self, "Generation failed", str(e))
            return
        finally:
            QApplication.restoreOverrideCursor()

        self.sync.notify_edit()
        self.refresh()
        self.status.showMessage("Month generated.", 3000)

    def clear_month(self):
        if not self.editable:
            return
        title = f"{self.config.year}-{self.config.month:02d}"
        if QMessageBox.question(self, "Clear", f"Empty every slot of {title}?") != QMessageBox.Yes:
            return
        self.roster.clear()
        self.sync.notify_edit()
        self.refresh()
        self.status.showMessage(f"{title} cleared.", 3000)

    def save_now(self):
        try:
            self.sync.flush_now()
        except PersistenceFailure as e:
            QMessageBox.warning(self, "Save failed", str(e))

    # ---------------- navigation ----------------
    def _flush_before_leaving(self) -> bool:
        """True when it is safe to drop the in-memory roster."""
        while True:
            try:
                self.sync.flush_now()
                return True
            except PersistenceFailure as e:
                mb = QMessageBox(self)
                mb.setIcon(QMessageBox.Warning)
                mb.setWindowTitle("Save failed")
                mb.setText(f"{e}\n\nThe roster has unsaved changes.")
                retry = mb.addButton("Retry", QMessageBox.AcceptRole)
                discard = mb.addButton("Discard changes", QMessageBox.DestructiveRole)
                mb.addButton("Stay", QMessageBox.RejectRole)
                mb.exec()
                if mb.clickedButton() is retry:
                    continue
                if mb.clickedButton() is discard:
                    self.sync.discard()
                    return True
                return False

    def _goto_month(self, delta: int):
        if not self._flush_before_leaving():
            return
        year, month = shift_month(self.config.year, self.config.month, delta)
        self.config = MonthConfig(year, month, self.config.custom_holidays)
        try:
            self.store.save_config(self.config)
        except PersistenceFailure as e:
            logger.warning("could not remember the selected month: %s", e)
        self.physicians = self.store.load_physicians()
        self.roster = build_month_roster(self.config, self.store.load_month_roster())
        self.sync.reset()
        self.refresh()

    def prev_month(self):
        self._goto_month(-1)

    def next_month(self):
        self._goto_month(1)

    def logout(self):
        if not self._flush_before_leaving():
            return
        self.logged_out = True
        self.close()

    def closeEvent(self, event):
        if not self._flush_before_leaving():
            event.ignore()
            return
        self._executor.shutdown()
        event.accept()

    def toggle_left_panel(self, visible: bool):
        sizes = self._splitter.sizes()
        if visible:
            left_min = self._left_container.minimumWidth()
            total = sum(sizes) if sizes else 1280
            self._left_container.setVisible(True)
            self._splitter.setSizes([left_min, max(total - left_min, 500)])
        else:
            self._left_container.setVisible(False)
            self._splitter.setSizes([0, sum(sizes) if sizes else 1000])
