"""shiftdesk package.

Workforce shift and leave tracking, organized by feature modules (shifts,
leave, users, notifications, ...) with a thin Flask controller layer over
service/repository layers.
"""
