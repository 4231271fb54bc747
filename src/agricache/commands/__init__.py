"""Built-in CLI sub-command groups for agricache."""
