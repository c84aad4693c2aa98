"""Protocol server, session registry and client for the browser bridge."""
