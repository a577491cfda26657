#!/usr/bin/env python3
"""
Launcher script for the Streamlit Fitness Tracker
"""

import os
import subprocess
import sys
from typing import List, Optional


def build_command(app_path: str, port: int = 8501, address: str = "localhost") -> List[str]:
    return [
        sys.executable, "-m", "streamlit", "run", app_path,
        "--server.port", str(port),
        "--server.address", address,
    ]


def main(argv: Optional[List[str]] = None) -> int:
    """Launch the Streamlit Fitness Tracker application"""
    argv = sys.argv[1:] if argv is None else argv
    script_dir = os.path.dirname(os.path.abspath(__file__))
    app_path = os.path.join(script_dir, "streamlit_app.py")

    if not os.path.exists(app_path):
        print(f"Error: streamlit_app.py not found at {app_path}")
        return 1

    port = int(argv[0]) if argv else int(os.environ.get("FITNESS_PORT", "8501"))

    print("Starting Fitness Tracker...")
    print("The app will open in your default web browser.")
    print("Press Ctrl+C to stop the application.")

    try:
        subprocess.run(build_command(app_path, port), cwd=script_dir, check=True)
    except KeyboardInterrupt:
        print("\nFitness Tracker stopped.")
    except (OSError, subprocess.CalledProcessError) as e:
        print(f"Error launching application: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
