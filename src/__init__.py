"""
SpendWise - Source Package

A personal budgeting assistant: record expenses, set per-category
budgets, see where the money goes, and ask an AI advisor for
budget adjustments.

DESIGN PRINCIPLES:
1. Numbers come from storage → AI only advises on them
2. Fail early, fail visibly (bad input never reaches the model)
3. Bad model output degrades, never crashes
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SpendWise Team"
