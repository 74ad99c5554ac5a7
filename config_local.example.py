# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for everything else. Only these switches are read from here.
"""

# Example: start in offline mode to exercise the outbox
# START_ONLINE = False

# Example: follow the real server's reachability instead of /online and /offline
# PROBE_ENABLED = True

# Example: headless run (probe only)
# CONSOLE_ENABLED = False
