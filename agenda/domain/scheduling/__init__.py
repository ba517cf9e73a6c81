"""
Scheduling Domain

Calendar slots, their overlap and exclusivity rules, and recurring series.

Structure:
- time_calculator.py      # Civil (UTC-3) date/time arithmetic
- durations.py            # Slot duration, labels, prices
- statuses.py             # Status / event type / frequency tags
- repository.py           # Slot database queries
- availability_service.py # Overlap detection and free-time search
- exclusivity.py          # Sibling purge and demotion cascades
- service.py              # Slot lifecycle operations
- recurrence_service.py   # Recurring series preview and creation
- router.py               # /slots endpoints
"""
