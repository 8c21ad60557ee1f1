#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Git Diff Sidebar
Entry point for the application.
"""

import sys
import time

from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication

from config import load_config
from error_handler import ErrorCategory, ErrorSeverity, handle_error
from logging_config import setup_logging, get_logger, configure_qt_logging
from ui.main_window import App

logger = get_logger(__name__)


def main() -> int:
    setup_logging(level=str(load_config().get("log_level") or "INFO"))
    startup_start_time = time.time()

    try:
        logger.info("Starting Git Diff Sidebar")

        app = QApplication(sys.argv)
        configure_qt_logging()

        app.setApplicationName("Git Diff Sidebar")
        app.setApplicationDisplayName("Git Diff Sidebar")
        app.setApplicationVersion("0.1")

        window = App()
        window.show()
        logger.info(f"Window shown after {(time.time() - startup_start_time) * 1000:.1f}ms")

        # Qt drives the asyncio loop; returns when the last window closes
        QtAsyncio.run(window.startup(), keep_running=True, handle_sigint=True)
        logger.info("Application exiting")
        return 0

    except Exception as e:
        handle_error(e, ErrorCategory.STARTUP, ErrorSeverity.CRITICAL)
        return 1


if __name__ == "__main__":
    sys.exit(main())
