"""
Personalized baselining modules.

This package derives physiological reference values (max and resting heart rate,
alert thresholds) from a user's age and gender.
"""
