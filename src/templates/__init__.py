"""Java source templates for generated plugins; tokens are written as ``[NAME]``."""
