"""
Helper functions for the predicted-probabilities tutorial.

Usage:
    from logit_functions.survey_generator import generate_survey_data
    from logit_functions.logistic_models import TurnoverLogitModel
"""

__version__ = "0.1.0"
