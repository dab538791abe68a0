"""
Core Application Layer - Agent Pipeline and Configuration
=========================================================

Provides the request pipeline behind the writing assistant.

Modules:
    constants: Configuration values, fallback strings and Pydantic settings
    context: Conversation and file context assembly with relevance filtering
    prompts: System prompt, user prompt rendering and title prompt
    chunk_extractor: Incremental extraction of completed diff chunks from a stream
    cancellation: Cooperative cancellation token for streamed responses

Key Components:

Context Assembly (context/):
    Builds a bounded Context per request. Conversation history is cut to the
    last 14 turns; related documents are narrowed by an LLM call only when a
    candidate set exceeds 5. Any failure degrades to an explicit
    ``[Error loading ... context]`` placeholder instead of raising.

Chunk Extraction (chunk_extractor.py):
    Locates the ``"chunks"`` array in partial JSON text and re-parses its
    completed elements on every delta. Incomplete input is a no-op.

Configuration (constants.py):
    Centralized configuration using Pydantic Settings for validation:
    - OpenAI / Azure OpenAI credentials and endpoints
    - Model and sampling defaults per call purpose
    - Context size limits and logging configuration

See Also:
    :mod:`api.services`: Agent and title services built on this layer
    :mod:`integrations.completion_client`: Completion provider access
"""
