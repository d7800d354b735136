"""Cache-aware unattended application installer.

Core design goals:
- Shared network cache first, direct download as fallback
- Archive extraction with installer discovery
- Integrity verification before anything is executed
- Exit-code based outcome (success / reboot required / failure)
- Centralized, archived run log
"""

__all__ = []
