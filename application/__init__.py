"""
Application Layer for the Strength Program API.

Part of STR-101: Service skeleton

This package contains:
- ports/: Abstract repository interfaces (what the core services need)
- exceptions: Typed failures raised by the core services
"""
