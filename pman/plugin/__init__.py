"""
pman Plugin System - Plugin lifecycle management.

This module handles:
- Plugin registry
- Configuration transactions and Lua statement rendering
- Git-based plugin installation and updates
- Applying configuration with a deferred retry
"""

__all__ = []
