"""rehab_gateway — FastAPI backend-for-frontend for the rehabilitation interview.

Wraps one ``SurveySessionController`` per chat behind a small REST API so a
web chat widget can drive the interview without holding any state itself.
"""
