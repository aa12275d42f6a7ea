"""
Plan catalog - tenant-defined plans, their addons, plan statistics and
comparison, plus the calendar arithmetic used for every billing period.
"""
