"""tracker-sync: reconcile a task board with an issue tracker."""

__version__ = "0.4.0"
