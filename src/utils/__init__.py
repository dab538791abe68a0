"""
Utils Module - Infrastructure Utilities and Support Functions
==============================================================

Modules:
    logger: JSON structured logging with rotation and request context
    metrics: Prometheus counters and histograms
    client_factory: AsyncOpenAI / AsyncAzureOpenAI construction with httpx timeouts
    html_text: Best-effort HTML to plain-text extraction
    json_utils: Compact JSON serialization for SSE frames

Logging (logger.py):
    Structured JSON logging with multiple handlers:
    - Console handler: Human-readable format to stderr
    - Agent turn handler: JSON Lines format to logs/agent_turns.jsonl
    - Error handler: JSON Lines format to logs/errors.jsonl

    Message content is hidden from turn logs unless ENABLE_CONTENT_LOGGING
    is set, and PII patterns are redacted when it is.

Example:
    Structured logging::

        from utils.logger import logger

        logger.info("Relevance fallback", kind="document", candidates=12)
"""
