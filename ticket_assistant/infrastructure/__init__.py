"""Infrastructure layer - OpenRouter, ClickUp and context file adapters."""
