"""Client-wide defaults for completion requests.

Subsystem classification and wiki page generation set their own token
limits; these apply to any call that does not.
"""

# =============================================================================
# Generation Defaults
# =============================================================================
# Classification and page responses are both JSON, so JSON_TEMPERATURE is what
# the pipeline actually runs at. DEFAULT_TEMPERATURE covers free-text calls.

MAX_TOKENS = 8192
DEFAULT_TEMPERATURE = 0.7
JSON_TEMPERATURE = 0.3

# =============================================================================
# Timeouts
# =============================================================================
# Upper bound for one classification or page request; overridable as llm.timeout_seconds.

LLM_TIMEOUT_SECONDS = 60.0
