"""Punch Clock package.

This package is organized by feature modules (attendance, evidence, reports, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
