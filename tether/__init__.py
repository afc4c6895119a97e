"""
Tether — Study Voice-Channel Accountability for Discord
========================================================
Tracks how long members stay in voice channels against personal study
targets and daily goals, congratulates them when they get there, and
kicks them when they leave early or miss the day's goal.

Package layout::

    tether/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Emoji + hour formatting helpers
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # Target, DailyGoal, TodoItem, RolloverRun
    ├── engine/
    │   └── accounting.py  # Elapsed-time arithmetic + session state
    ├── services/
    │   ├── target_service.py      # Target records
    │   ├── goal_service.py        # Daily goal records + crediting
    │   ├── todo_service.py        # To-do records
    │   ├── session_service.py     # Join / leave / sampler accounting
    │   ├── rollover_service.py    # Daily reset bookkeeping
    │   ├── messages.py            # DM / notice / kick-reason text
    │   └── enforcement_service.py # Kicks, DMs, fallback notices
    └── bot/
        ├── core.py        # Bot subclass, cog loader
        └── cogs/
            ├── voice.py   # Presence transitions + periodic sampler
            ├── goals.py   # /settarget, /cleartarget, /setgoal, /progress
            ├── todos.py   # /addtodo, /listtodos, /donetodo, /deltodo
            └── tasks.py   # Daily rollover loop
"""

__version__ = "0.1.0"
