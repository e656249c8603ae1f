"""Runtime configuration, logging and tracing."""
