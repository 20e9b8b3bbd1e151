"""Watch package

Filesystem watchers (watchdog) for the stylesheet and the image tree, plus the
debouncer that collapses bursts of change notifications.
"""
