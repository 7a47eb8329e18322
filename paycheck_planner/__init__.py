"""
Paycheck Planner - Source Package

A personal finance tracker: record a paycheck and a list of bills,
and see how much of the paycheck is left once they are paid.

DESIGN PRINCIPLES:
1. One store owns all state; callers get immutable snapshots
2. Derived numbers are computed on read, never cached
3. Every mutation is validated, saved and audited
4. Unreadable saved data never blocks startup
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Paycheck Planner Team"
