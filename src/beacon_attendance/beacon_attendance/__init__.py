"""Beacon Attendance package.

Proximity-verified class attendance: a BLE beacon session state machine, a
class-session validator and an attendance reconciler, organized by feature
modules (beacon, schedules, attendance) behind thin Flask controllers.
"""
