"""hookwatch - webhook receiver and notification dashboard for event-watcher payloads"""
__version__ = "0.1.0"
