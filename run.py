"""Run the Evently API locally.

Usage:
    python run.py

Reads .env, then serves the development app on port 5001. When a
`venv/` exists next to this file and another interpreter was used,
the script re-runs itself under the venv's Python.
"""

import os
import sys
import subprocess

# ── Re-exec under the project venv ──
_project_dir = os.path.dirname(os.path.abspath(__file__))
_venv_python = os.path.join(_project_dir, "venv", "bin", "python")

if os.path.exists(_venv_python) and os.path.realpath(sys.executable) != os.path.realpath(_venv_python):
    print("[run.py] Re-running under venv Python...")
    try:
        sys.exit(subprocess.call([_venv_python] + sys.argv))
    except KeyboardInterrupt:
        sys.exit(0)

# ── App ──
from dotenv import load_dotenv

load_dotenv()

from evently import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5001)
