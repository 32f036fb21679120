"""Attendance Gate package.

Organized by feature modules (attendance, qr, audit, users, reports, ...)
with a thin Flask controller layer on top of service/repository layers.
"""
