"""
Bundled data shipped with devsetup.

``profiles/`` holds the built-in profiles, one YAML file per profile.
"""

from __future__ import annotations

from pathlib import Path

DATA_DIR = Path(__file__).parent
PROFILES_DIR = DATA_DIR / "profiles"
