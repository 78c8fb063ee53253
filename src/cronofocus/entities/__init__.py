"""
Entity operations, one module per area:
- users.py: profiles, registration, login
- planner.py: days, tasks, task lifecycle, distractions
- preferences.py: categories and per-user settings
- exports.py: export log
"""
