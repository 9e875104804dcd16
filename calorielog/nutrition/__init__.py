# -*- coding: utf-8 -*-
"""Nutrition domain: food logs, goals and report aggregation.

`aggregator.aggregate` is a pure function over food-log records; the
routers in `api.py` fetch the records (scoped by user and window) from
`storage.py` and hand them over.
"""
