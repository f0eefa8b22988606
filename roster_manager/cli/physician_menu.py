from roster_manager.models.physician import Physician
from roster_manager.utils.input_handler import get_input
from roster_manager.utils.parse_utils import parse_date_list


def physician_menu(session):
    while True:
        print("\n[Physicians]")
        print("1. List")
        print("2. Add")
        print("3. Toggle active")
        print("4. Set unavailable dates")
        print("0. Back")

        choice = get_input("Choice")
        if choice == "1":
            show_physicians(session)
        elif choice == "2":
            add_physician(session)
        elif choice == "3":
            toggle_active(session)
        elif choice == "4":
            set_unavailable(session)
        elif choice == "0":
            break
        else:
            print("Unknown choice.")


def show_physicians(session):
    print()
    for i, p in enumerate(session.physicians, 1):
        state = "active" if p.active else "inactive"
        off = ", ".join(sorted(p.unavailable_dates)) or "-"
        print(f"{i:>2}. {p.name:<20} {p.phone:<14} {state:<9} off: {off}")


def _pick(session) -> Physician | None:
    show_physicians(session)
    raw = get_input("Number")
    if not raw.isdigit() or not 1 <= int(raw) <= len(session.physicians):
        print("Invalid choice.")
        return None
    return session.physicians[int(raw) - 1]


def add_physician(session):
    name = get_input("Name")
    phone = get_input("Phone", allow_empty=True)
    session.physicians.append(Physician.create(name, phone=phone))
    session.save_physicians()
    print(f"{name} added.")


def toggle_active(session):
    # physicians are deactivated, never deleted, so stored rosters keep resolving
    p = _pick(session)
    if p is None:
        return
    p.active = not p.active
    session.save_physicians()
    print(f"{p.name} is now {'active' if p.active else 'inactive'}.")


def set_unavailable(session):
    p = _pick(session)
    if p is None:
        return
    current = ", ".join(sorted(p.unavailable_dates))
    raw = get_input("Dates (YYYY-MM-DD, comma separated; '-' clears)", default=current or "-")
    p.unavailable_dates = [] if raw.strip() == "-" else parse_date_list(raw)
    session.save_physicians()
    print(f"{p.name}: {len(p.unavailable_dates)} unavailable date(s).")
