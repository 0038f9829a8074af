"""HTTP interface for page-size checks.

This package provides a Flask application that runs checks on smaps
and trace text posted as JSON.  It is an **optional** extra — install
with::

    pip install py-pagecheck[web]

The ``create_app`` factory in ``app.py`` serves three endpoints:

- ``POST /api/verify`` — check a trace log against a snapshot.
- ``POST /api/ranges`` — parse a snapshot and list its ranges.
- ``GET /api/status`` — liveness probe.
"""
