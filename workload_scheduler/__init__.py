"""
Course Workload Scheduler: schedule variants, legacy snapshot migration and
conflict validation for departmental course planning.
"""

__version__ = "1.0.0"
