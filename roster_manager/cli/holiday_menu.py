from datetime import date

from roster_manager.models.roster import Holiday
from roster_manager.utils.date_helper import is_weekend
from roster_manager.utils.input_handler import get_input


def holiday_menu(session):
    while True:
        print("\n[Holidays]")
        print("1. List")
        print("2. Add / rename")
        print("3. Remove")
        print("0. Back")

        choice = get_input("Choice")
        if choice == "1":
            show_holidays(session)
        elif choice == "2":
            add_holiday(session)
        elif choice == "3":
            remove_holiday(session)
        elif choice == "0":
            break
        else:
            print("Unknown choice.")


def show_holidays(session):
    c = session.config
    prefix = f"{c.year:04d}-{c.month:02d}-"
    shown = [h for h in c.custom_holidays if h.date.startswith(prefix)]
    if not shown:
        print("No custom holidays this month (weekends always count).")
    for h in shown:
        print(f"{h.date}  {h.name or '-'}")


def _ask_date(session) -> str | None:
    raw = get_input("Date (YYYY-MM-DD)")
    try:
        d = date.fromisoformat(raw)
    except ValueError:
        print("Use YYYY-MM-DD.")
        return None
    if (d.year, d.month) != (session.config.year, session.config.month):
        print("That date is not in the current month.")
        return None
    return d.isoformat()


def add_holiday(session):
    key = _ask_date(session)
    if key is None:
        return
    if is_weekend(date.fromisoformat(key)):
        print("Weekends are always holidays.")
        return
    name = get_input("Name", allow_empty=True)
    rest = [h for h in session.config.custom_holidays if h.date != key]
    session.set_holidays(rest + [Holiday(key, name)])
    print(f"{key} is now a holiday; its morning slots are open.")


def remove_holiday(session):
    key = _ask_date(session)
    if key is None:
        return
    rest = [h for h in session.config.custom_holidays if h.date != key]
    if len(rest) == len(session.config.custom_holidays):
        print("No custom holiday on that date.")
        return
    session.set_holidays(rest)
    print(f"{key} removed; any morning assignments on it were dropped.")
