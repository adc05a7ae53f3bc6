"""Room Stats MCP Server.

Coding-practice leaderboards for rooms of users: GitHub commit activity and
LeetCode solved counts, normalized, scored and ranked.
"""

__version__ = "0.1.0"
