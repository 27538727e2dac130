"""famnotify test suite

Test organization:
- unit/: Unit tests per module
  - push/: key codec, VAPID config, subscription store, dispatcher
  - client/: registration manager, subscription status tracker
  - worker/: push payload parsing, notification worker
  - core/: logging redaction
- integration/: Push API routes and the client flow over HTTP

Running tests:
    pytest
    pytest tests/unit/push/
    pytest -m "not integration"
    pytest --cov=famnotify --cov-report=term-missing
"""
