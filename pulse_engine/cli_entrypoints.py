#!/usr/bin/env python3
"""Console-script wrappers for the Brand Pulse scripts.

After an editable install (``pip install -e .``) the following commands become
available system-wide:

* ``pulse-insights``  – one insights run for a brand, written to a new session
* ``pulse-refresh``   – periodic re-analysis of one or more brands
* ``pulse-sessions``  – list / create / clean up session folders

The functions below forward to the scripts so there is no business-logic
duplication. Extra command-line arguments are passed through unchanged.
"""
from __future__ import annotations

import sys
from pathlib import Path
from subprocess import run

PYTHON = sys.executable
ROOT = Path(__file__).resolve().parents[1]  # Repository root


def _exec(script: str) -> None:
    """Run ``scripts/<script>`` with the current arguments and propagate its exit status."""
    run([PYTHON, str(ROOT / "scripts" / script), *sys.argv[1:]], check=True)


def insights() -> None:
    _exec("brand_insights.py")


def refresh() -> None:
    _exec("refresh_scheduler.py")


def sessions() -> None:
    _exec("session_manager.py")
