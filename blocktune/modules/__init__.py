"""Processing engines of the blocktune tuning pipeline."""
