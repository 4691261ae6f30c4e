"""Campus System package.

Organized by feature modules (timetable, attendance, users, access) with a
thin Flask controller layer on top of service/repository layers.
"""
