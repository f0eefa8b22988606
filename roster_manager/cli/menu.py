import logging

from roster_manager.cli.holiday_menu import holiday_menu
from roster_manager.cli.physician_menu import physician_menu
from roster_manager.exceptions import CancelAction, GoBackAction, GenerationError, PersistenceFailure
from roster_manager.logic.cascade import apply_edit, edit_warnings
from roster_manager.logic.evaluator import evaluate, month_summary
from roster_manager.logic.generator import generate_into
from roster_manager.models.physician import display_name
from roster_manager.models.roster import GENERAL, ICU, SHIFTS, WARDS, MonthConfig, build_month_roster
from roster_manager.settings import load_settings, open_store, setup_logging
from roster_manager.utils.date_helper import shift_month
from roster_manager.utils.input_handler import get_input
from roster_manager.utils.parse_utils import parse_year_month

logger = logging.getLogger(__name__)

SHIFT_LABELS = {"morning": "M", "afternoon": "A", "night": "N"}


class RosterSession:
    """Holds the month being edited; every change is written straight back."""

    def __init__(self, store, policy):
        self.store = store
        self.policy = policy
        self.physicians = store.load_physicians()
        self.config = store.load_config()
        self.roster = build_month_roster(self.config, store.load_month_roster())

    def save(self):
        self.store.save_month_roster(self.roster.to_records())

    def save_physicians(self):
        self.store.save_physicians(self.physicians)

    def set_holidays(self, holidays):
        """Store the holiday list, then re-derive the open month. Morning slots follow the flags."""
        self.config = MonthConfig(self.config.year, self.config.month,
                                  sorted(holidays, key=lambda h: h.date))
        self.store.save_config(self.config)
        self.roster.apply_config(self.config)
        self.save()

    def switch_month(self, year: int, month: int):
        self.save()
        self.config = MonthConfig(year, month, self.config.custom_holidays)
        self.store.save_config(self.config)
        self.roster = build_month_roster(self.config, self.store.load_month_roster())


def show_month(session: RosterSession):
    by_id = {p.id: p for p in session.physicians}
    r = session.roster
    print(f"\n[{r.year:04d}-{r.month:02d}]")
    print(f"{'date':<12}{'':<3}" + "".join(f"{w[:3].upper()}-{SHIFT_LABELS[s]:<10}" for w in WARDS for s in SHIFTS))
    for day in r:
        cells = []
        for ward in WARDS:
            for shift in SHIFTS:
                if shift == "morning" and not day.has_morning:
                    cells.append(f"{'':<14}")
                else:
                    cells.append(f"{display_name(by_id, day.get(shift, ward))[:13]:<14}")
        mark = "H" if day.is_holiday else ""
        print(f"{day.date:<12}{mark:<3}" + "".join(cells) + (f"  {day.holiday_name}" if day.holiday_name else ""))


def show_validation(session: RosterSession):
    result = evaluate(session.roster, session.physicians)
    if result.is_valid:
        print(f"No violations. Unfilled slots: {result.unfilled}")
    else:
        for v in result.violations:
            print(f"  [{v.code}] {v.date or '-'}: {v.message}")
        print(f"{len(result.violations)} violation(s), {result.unfilled} unfilled slot(s)")
    print(f"\n{'name':<20}{'total':>6}{'holiday':>8}{'ICU':>5}{'Gen':>5}  consecutive")
    for row in month_summary(session.roster, session.physicians):
        print(f"{row.name[:19]:<20}{row.total_shifts:>6}{row.holiday_shifts:>8}"
              f"{row.icu_shifts:>5}{row.general_shifts:>5}  {'yes' if row.consecutive_days else ''}")


def run_generate(session: RosterSession):
    confirm = get_input("Replace every assignment of this month? (y/n)", default="n")
    if not confirm.lower().startswith("y"):
        return
    try:
        generate_into(session.roster, session.physicians, session.config, session.policy)
    except GenerationError as e:
        print(f"Generation failed: {e}")
        return
    session.save()
    print("Month generated and saved.")


def edit_cell(session: RosterSession):
    date_key = get_input("Date (YYYY-MM-DD)")
    if date_key not in session.roster:
        print("That date is not in the current month.")
        return
    shift = get_input("Shift (morning/afternoon/night)").lower()
    ward = get_input("Ward (icu/general)").lower()
    if shift not in SHIFTS or ward not in (ICU, GENERAL):
        print("Unknown shift or ward.")
        return

    active = [p for p in session.physicians if p.active]
    for i, p in enumerate(active, 1):
        print(f"{i}. {p.name}")
    choice = get_input("Physician number (empty = clear)", allow_empty=True)
    physician_id = None
    if choice:
        if not choice.isdigit() or not 1 <= int(choice) <= len(active):
            print("Invalid choice.")
            return
        physician_id = active[int(choice) - 1].id

    apply_edit(session.roster, date_key, shift, ward, physician_id)
    for w in edit_warnings(session.roster, date_key, session.physicians):
        print(f"  warning: {w.message}")
    session.save()
    print("Saved.")


def switch_month(session: RosterSession):
    raw = get_input("Month (YYYY-MM, or + / -)")
    if raw in ("+", "-"):
        year, month = shift_month(session.config.year, session.config.month, 1 if raw == "+" else -1)
    else:
        try:
            year, month = parse_year_month(raw)
        except ValueError:
            print("Use YYYY-MM.")
            return
    session.switch_month(year, month)


def main_menu(session: RosterSession):
    while True:
        c = session.config
        print(f"\n[Ward roster {c.year:04d}-{c.month:02d}]")
        print("1. Show month")
        print("2. Generate month")
        print("3. Edit a cell")
        print("4. Validate / fairness")
        print("5. Switch month")
        print("6. Physicians")
        print("7. Holidays")
        print("0. Quit")

        try:
            choice = get_input("Choice")
            if choice == "1":
                show_month(session)
            elif choice == "2":
                run_generate(session)
            elif choice == "3":
                edit_cell(session)
            elif choice == "4":
                show_validation(session)
            elif choice == "5":
                switch_month(session)
            elif choice == "6":
                physician_menu(session)
            elif choice == "7":
                holiday_menu(session)
            elif choice == "0":
                session.save()
                print("Bye.")
                break
            else:
                print("Unknown choice.")
        except GoBackAction:
            print("Back to menu")
        except CancelAction:
            print("Cancelled")
        except PersistenceFailure as e:
            # the in-memory month is kept, nothing is discarded
            print(f"Save failed: {e}")


def main():
    settings = load_settings()
    setup_logging(settings)
    store = open_store(settings)
    main_menu(RosterSession(store, settings.ranking_policy()))


if __name__ == "__main__":
    main()
