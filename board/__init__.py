"""Backend package: DB models, pipelines, APIs.

This package stores interview boards and their expert assignments, serves
the expert directory and agendas, and records candidate feedback.
"""
