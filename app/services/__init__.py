"""
Services layer - Business logic goes here.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- escalation/: finds overdue issues, places calls, admin controls
- notifier/: voice call providers (Twilio, demo)
- Admin decisions (viewed, reset) stay human-in-the-loop
"""
