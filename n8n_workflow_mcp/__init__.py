"""MCP server exposing n8n workflows as assistant tools."""
