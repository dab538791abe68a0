"""
Models Module - Data Models and Type Definitions
=================================================

Provides Pydantic models for type safety, runtime validation, and API responses.
All models use Pydantic v2.

Modules:
    agent_models: Agent request/response, LLM output schemas, stream events
    context_models: Per-request Context, LLMContext and LLMConfig
    error_models: Error codes and the standard error envelope
    schemas: Operational endpoint response models (health)

Wire JSON uses the canvas editor's camelCase names through aliases; Python
code uses snake_case.
"""
