"""
Task modules for Health Export Tasks.

- export: weekly export of last week's health records
"""
