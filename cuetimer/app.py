import logging
import os
import sys

from PySide6 import QtWidgets

from .window import MainWindow


def main():
    logging.basicConfig(
        level=os.getenv("CUETIMER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QtWidgets.QApplication(sys.argv)
    app.setOrganizationName(MainWindow.ORG_NAME)
    app.setApplicationName(MainWindow.APP_NAME)

    w = MainWindow()
    w.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
