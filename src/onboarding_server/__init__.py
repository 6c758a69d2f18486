"""onboarding_server — FastAPI REST API over the onboarding SDK.

Lets a rendering layer drive questionnaire and chain flows over HTTP, and
lists the results stored for completed flows.
"""
