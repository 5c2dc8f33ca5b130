"""
Prompt configurations for YouTube content brainstorming
"""

# Metadata
ITEM_TYPE = "video ideas"

BRAINSTORM_PROMPT = """You are a creative strategist for YouTube creators.
Suggest {count} original {item_type} for a channel in the "{category}" category.
Build them around these keywords: {keywords}

Each suggestion needs:
- title: a short, clickable video title (under 70 characters)
- concept: two or three sentences describing the hook, the format and why viewers would watch

Avoid duplicates and generic listicles. Respond only with JSON matching the schema."""
