# =============================================
# File: catalog_scoring/services/compare_profiles.py
# Purpose: Named compare scoring profiles (weights + chipset table) loaded from YAML
# =============================================

from __future__ import annotations
import os
import threading
from typing import Any, Dict, Mapping, Optional

import yaml
from loguru import logger

from .compare_ranking import CompareScoreConfig, normalize_compare_score_config


class CompareProfileStore:
    """
    Profiles file layout:

        gaming:
          weights: {performance: 50, display: 25, camera: 5, battery: 15, priceValue: 5}
        budget:
          weights: {priceValue: 0.4}
          chipset_rules:
            - {keyword: "helio g99", score: 58}

    The file is re-read when its path or mtime changes. A missing or unreadable file means no profiles.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._stamp: Optional[tuple] = None
        self._profiles: Dict[str, CompareScoreConfig] = {}

    @property
    def path(self) -> Optional[str]:
        return self._path or os.getenv("COMPARE_PROFILES_PATH") or None

    def _load(self, path: str) -> Dict[str, CompareScoreConfig]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"[compare-profiles] cannot read {path}: {e}")
            return {}
        if not isinstance(raw, Mapping):
            logger.warning(f"[compare-profiles] {path} must hold a mapping of profile names")
            return {}
        profiles = {str(name).strip().lower(): normalize_compare_score_config(body) for name, body in raw.items()}
        logger.info(f"[compare-profiles] loaded {len(profiles)} profile(s) from {path}")
        return profiles

    def profiles(self) -> Dict[str, CompareScoreConfig]:
        path = self.path
        if not path:
            return {}
        try:
            mtime = os.path.getmtime(path)
        except OSError:
            mtime = None
        stamp = (path, mtime)
        with self._lock:
            if stamp != self._stamp:
                self._profiles = self._load(path) if mtime is not None else {}
                self._stamp = stamp
            return dict(self._profiles)

    def get(self, name: Optional[str]) -> Optional[CompareScoreConfig]:
        if not name:
            return None
        return self.profiles().get(name.strip().lower())


PROFILE_STORE = CompareProfileStore()


def resolve_compare_config(profile: Optional[str] = None, override: Any = None) -> CompareScoreConfig:
    """
    An explicit config wins; otherwise the named profile; otherwise the defaults.
    Unknown profile names are not an error.
    """
    if isinstance(override, Mapping) and override:
        return normalize_compare_score_config(override)
    named = PROFILE_STORE.get(profile)
    if named is None:
        if profile:
            logger.info(f"[compare-profiles] unknown profile '{profile}', using defaults")
        return normalize_compare_score_config(None)
    return named
