"""NuGet version parsing, ranges and selection."""
