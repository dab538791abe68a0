"""
Integrations Module - External System Integrations
===================================================

Provides the completion provider integration used by the writing assistant.

Modules:
    completion_client: Structured, streamed and plain-text chat completions
        over an injected AsyncOpenAI client, with explicit validation results
        (ValidResponse | ValidationFailure) and typed errors
        (CompletionProviderError, StructuredOutputError).
"""
