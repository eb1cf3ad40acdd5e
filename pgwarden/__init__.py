"""pgwarden: scheduled data protection for a PostgreSQL server.

One invocation runs a fixed, gated pipeline:
  - preflight (backup directory + server reachability)
  - logical backup (pg_dump) and physical backup (data directory archive)
  - upload of both artifacts to an rclone remote
  - success or failure e-mail to the operator
  - local retention sweep (only after a fully successful run)
"""

__version__ = "0.1.0"
__description__ = "Scheduled PostgreSQL backup orchestrator"

from pgwarden.config import WardenSettings
from pgwarden.core.orchestrator import Orchestrator, run_backup_cycle

__all__ = ["Orchestrator", "WardenSettings", "run_backup_cycle", "__version__"]
