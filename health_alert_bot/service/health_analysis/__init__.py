"""
Baseline and alert evaluation for wearable vital readings.

This package turns a user's demographic profile into personal reference values
and evaluates incoming readings against rule predicates built on them.
"""
