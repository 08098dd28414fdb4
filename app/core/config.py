"""Runtime settings read from the environment."""
import os

# Pause before a result is returned, while the session slot stays held
PRESENTATION_DELAY_SECONDS = float(os.environ.get("CROP_ADVISOR_PRESENTATION_DELAY_SECONDS", "0"))

LOG_LEVEL = os.environ.get("CROP_ADVISOR_LOG_LEVEL", "INFO")

SESSION_HEADER = os.environ.get("CROP_ADVISOR_SESSION_HEADER", "X-Session-Id")
