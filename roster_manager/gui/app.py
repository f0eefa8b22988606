import argparse
import logging
import sys

from PySide6.QtWidgets import (
    QApplication, QDialog, QDialogButtonBox, QFormLayout, QLabel, QLineEdit, QVBoxLayout,
)

from roster_manager.data.models import ROLES
from roster_manager.exceptions import AuthenticationError
from roster_manager.gui.main_window import MainWindow
from roster_manager.settings import load_settings, open_store, setup_logging

logger = logging.getLogger(__name__)


class LoginDialog(QDialog):
    def __init__(self, store, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Sign in")
        self.store = store
        self.user = None

        v = QVBoxLayout(self)
        form = QFormLayout()
        self.ed_user = QLineEdit()
        self.ed_pass = QLineEdit()
        self.ed_pass.setEchoMode(QLineEdit.Password)
        form.addRow("Username", self.ed_user)
        form.addRow("Password", self.ed_pass)
        v.addLayout(form)

        self.error = QLabel("")
        self.error.setStyleSheet("color:#b91c1c;")
        v.addWidget(self.error)

        btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        btns.accepted.connect(self._on_login)
        btns.rejected.connect(self.reject)
        v.addWidget(btns)

    def _on_login(self):
        try:
            self.user = self.store.authenticate(self.ed_user.text().strip(), self.ed_pass.text())
        except AuthenticationError as e:
            self.error.setText(str(e))
            self.ed_pass.clear()
            return
        logger.info("signed in as %s (%s)", self.user.username, self.user.role)
        self.accept()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Ward shift roster editor")
    parser.add_argument("--add-user", metavar="USERNAME", help="create or update a login and exit")
    parser.add_argument("--password", help="password for --add-user")
    parser.add_argument("--role", choices=ROLES, default="viewer")
    parser.add_argument("--name", default="")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    settings = load_settings()
    setup_logging(settings)
    store = open_store(settings)

    if args.add_user:
        if not args.password:
            print("--password is required with --add-user")
            return 2
        store.add_user(args.add_user, args.password, args.role, args.name)
        print(f"user {args.add_user} ({args.role}) saved")
        return 0

    app = QApplication(sys.argv[:1])
    while True:
        login = LoginDialog(store)
        if not login.exec():
            return 0
        window = MainWindow(store, login.user, settings)
        window.show()
        app.exec()
        if not window.logged_out:
            return 0


if __name__ == "__main__":
    sys.exit(main())
