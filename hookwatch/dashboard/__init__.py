"""Dashboard side: event polling, toasts and notification fan-out."""
