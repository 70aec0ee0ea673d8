"""Shop appstore integration SDK.

Receives signed webhooks from the application marketplace and applies
them to local shop records; talks to shop REST APIs with rate-limit aware
retries.
"""

__version__ = "0.1.0"
