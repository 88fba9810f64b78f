"""Test suite for Flux Intake.

This package contains tests for:
- Word counting and the field rule table (boundaries, patterns, files)
- State machine transitions (valid and invalid)
- Event system (emission, serialization)
- HTTP collaborators (upload, record creation, sign-in)
- Orchestrator scenarios (happy path, failures, retries, sign-in gate)
"""
