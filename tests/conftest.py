"""Test bootstrap: ensure package root is on sys.path.

This allows absolute imports like `modules.field.coordinator` and
`core.event_bus` which assume the working directory is the package root.
The session call log is disabled so test runs leave no log files behind.
"""
import sys, os
os.environ.setdefault("FIELD_CALL_LOG", "NONE")
PACKAGE_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PACKAGE_ROOT not in sys.path:
    sys.path.insert(0, PACKAGE_ROOT)
