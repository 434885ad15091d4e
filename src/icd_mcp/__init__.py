"""
WHO ICD MCP Server

Exposes the WHO ICD-API (ICD-10 and ICD-11) as a single MCP tool with
action dispatch:
- lookup:   code details
- search:   ICD-11 flexible search
- chapters: top-level chapters of a release
- children: subcodes of a code
- api:      raw passthrough to id.who.int
"""

__version__ = "1.0.0"
