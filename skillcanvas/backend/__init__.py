"""SkillCanvas backend - HTTP/WebSocket surface, storage and autosave around the core."""
