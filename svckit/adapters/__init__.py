"""Adapter package for wire-facing code.

Purpose:
    Hold the JSON text codec and the remote-call error built from HTTP
    responses.

Dependencies:
    Submodules depend on ``requests`` (response type, case-insensitive maps)
    and on the domain reflection helpers.

Call context:
    Imported by service clients when a call fails, and by tests.
"""
