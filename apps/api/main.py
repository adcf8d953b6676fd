"""Thin API launcher.

This is the uvicorn entrypoint. All application logic lives in the songbird package.
Run with: uvicorn main:app --reload

The app instance is created here (not in songbird.app) so that tests can
import create_app without every environment variable configured.
"""

from songbird.app import add_request_id_middleware, create_app

app = create_app()
# Request-id middleware goes on LAST so it runs FIRST (outermost)
add_request_id_middleware(app)

__all__ = ["app"]
