"""Agents that discover, parse and analyze a JavaScript/TypeScript codebase."""
