# modporter/core/logging/util.py
from __future__ import annotations

import logging



def getPorterLogger(kind: str) -> logging.Logger:
    """Logger for one porter kind, e.g. getPorterLogger("Weapons") -> modporter.porters.Weapons"""
    return logging.getLogger(f"modporter.porters.{str(kind).strip()}")
