"""
mcpbridge - run MCP tool modules over stdio on behalf of users.
"""

__version__ = "0.1.0"
__logo__ = "🔌"
