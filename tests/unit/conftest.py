from __future__ import annotations

import sys
from pathlib import Path


# Unit tests cover pure helpers only; nothing here opens a database connection.
# Ensure the repo root is importable (so `import db.*` and `import services.*` work in tests).
REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT))
