# -*- coding: utf-8 -*-
"""calorielog — calorie-tracking backend (food logs, photo analysis, reports)."""

__version__ = "0.1.0"
