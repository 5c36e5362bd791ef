"""Event logging and HTTP/runtime instrumentation for the fuel station dashboard."""
