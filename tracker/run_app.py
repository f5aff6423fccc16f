"""Run the posture tracker CLI (dev helper)."""
from __future__ import annotations

from posture_app.gui.cli import main


if __name__ == "__main__":
    main()
