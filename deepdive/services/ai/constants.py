"""Constants for the deep analysis pipeline."""

# Call log steps
STEP_TRIAGE = "triage"
STEP_DETAIL = "detail"
STEP_SYNTHESIS = "synthesis"
STEP_ARTIFACT = "artifact"

# Progress-only steps
STEP_DONE = "done"
STEP_ERROR = "error"

# Model parameters per step
TRIAGE_TEMPERATURE = 0.4
TRIAGE_MAX_OUTPUT_TOKENS = 4096
DETAIL_TEMPERATURE = 0.3
DETAIL_MAX_OUTPUT_TOKENS = 4096
SYNTHESIS_TEMPERATURE = 0.4
SYNTHESIS_MAX_OUTPUT_TOKENS = 8192
ARTIFACT_TEMPERATURE = 0.7
ARTIFACT_MAX_OUTPUT_TOKENS = 2048

# Storyboard batching
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10
RECENT_VIDEO_SLOTS = 2

# Messages persisted on records
NO_STORYBOARDS_MESSAGE = "No storyboards available"
RUN_CANCELLED_MESSAGE = "Cancelled by user"
ENTRY_CANCELLED_MESSAGE = "Run cancelled"
NO_CANDIDATES_MESSAGE = "No channels matching filters found for triage"
