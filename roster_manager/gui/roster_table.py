from datetime import date

from PySide6.QtCore import Qt
from PySide6.QtGui import QBrush, QColor
from PySide6.QtWidgets import QAbstractItemView, QComboBox, QHeaderView, QTableWidget, QTableWidgetItem

from roster_manager.models.physician import Physician, StaleReference, resolve_physician
from roster_manager.models.roster import GENERAL, ICU, MORNING, SHIFTS, DayAssignment, MonthRoster

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
SHIFT_TIMES = {"morning": "08:30-16:30", "afternoon": "16:30-00:30", "night": "00:30-08:30"}
WARD_TITLES = {GENERAL: "General", ICU: "ICU"}
HOLIDAY_BG = QColor("#fdecea")
GHOST_BG = QColor("#f3f4f6")

# column 0 is the date, then General M/A/N, then ICU M/A/N
COLUMNS = [(ward, shift) for ward in (GENERAL, ICU) for shift in SHIFTS]


class RosterTable(QTableWidget):
    """
    One row per day, one combo box per existing slot.
    on_cell_edited(date_key, shift, ward, physician_id_or_None) is called on user changes.
    """

    def __init__(self, on_cell_edited, parent=None):
        super().__init__(0, 1 + len(COLUMNS), parent)
        self.on_cell_edited = on_cell_edited
        self.read_only = False
        self._physicians = []
        self._by_id = {}
        self._rows = {}   # date_key -> row

        self.setHorizontalHeaderLabels(
            ["Date"] + [f"{WARD_TITLES[w]}\n{SHIFT_TIMES[s]}" for w, s in COLUMNS])
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setSelectionMode(QAbstractItemView.NoSelection)
        self.verticalHeader().setVisible(False)
        header = self.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeToContents)
        for c in range(1, self.columnCount()):
            header.setSectionResizeMode(c, QHeaderView.Stretch)

    def render_month(self, roster: MonthRoster, physicians, read_only: bool):
        self.read_only = read_only
        self._physicians = list(physicians)
        self._by_id = {p.id: p for p in self._physicians}
        self._rows = {}
        self.setRowCount(0)
        for day in roster:
            r = self.rowCount()
            self.insertRow(r)
            self._rows[day.date] = r
            self._fill_row(r, day)

    def refresh_day(self, day: DayAssignment):
        r = self._rows.get(day.date)
        if r is not None:
            self._fill_row(r, day)

    # ---------- cells ----------
    def _fill_row(self, r: int, day: DayAssignment):
        d = date.fromisoformat(day.date)
        label = f"{WEEKDAYS[d.weekday()]} {d.day:>2}"
        if day.holiday_name:
            label += f"  {day.holiday_name}"
        item = QTableWidgetItem(label)
        if day.is_holiday:
            item.setBackground(QBrush(HOLIDAY_BG))
            item.setForeground(QBrush(QColor("#b91c1c")))
        self.setItem(r, 0, item)

        for c, (ward, shift) in enumerate(COLUMNS, start=1):
            self.removeCellWidget(r, c)
            if shift == MORNING and not day.has_morning:
                blank = QTableWidgetItem("-")
                blank.setTextAlignment(Qt.AlignCenter)
                blank.setBackground(QBrush(GHOST_BG))
                self.setItem(r, c, blank)
                continue
            self.setItem(r, c, QTableWidgetItem(""))
            self.setCellWidget(r, c, self._make_combo(day, shift, ward))

    def _make_combo(self, day: DayAssignment, shift: str, ward: str) -> QComboBox:
        current = day.get(shift, ward)
        combo = QComboBox()
        combo.addItem("-", None)
        # only active physicians free on that date are offered
        offered = [p for p in self._physicians if p.is_available(day.date)]
        for p in offered:
            combo.addItem(p.name, p.id)

        ref = resolve_physician(self._by_id, current)
        if ref is not None and not any(p.id == current for p in offered):
            # keep the value visible, but not selectable again
            text = "unknown" if isinstance(ref, StaleReference) else f"({ref.name})"
            combo.addItem(text, current)
            combo.model().item(combo.count() - 1).setEnabled(False)

        combo.setCurrentIndex(max(combo.findData(current), 0))
        self._paint(combo, ref)
        combo.setEnabled(not self.read_only)
        combo.currentIndexChanged.connect(
            lambda _i, cb=combo, k=day.date, s=shift, w=ward: self._on_combo(cb, k, s, w))
        return combo

    def _paint(self, combo: QComboBox, ref):
        if isinstance(ref, Physician):
            combo.setStyleSheet(f"QComboBox {{ background-color: {ref.color}; color: #1f2937; }}")
        elif isinstance(ref, StaleReference):
            combo.setStyleSheet("QComboBox { color: #9ca3af; font-style: italic; }")
        else:
            combo.setStyleSheet("")

    def _on_combo(self, combo: QComboBox, date_key: str, shift: str, ward: str):
        if self.read_only:
            return
        self.on_cell_edited(date_key, shift, ward, combo.currentData())
