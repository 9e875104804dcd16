# -*- coding: utf-8 -*-
"""Food photo upload: AI nutrition analysis, file storage, food-log creation."""
