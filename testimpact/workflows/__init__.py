"""Analysis workflows for testimpact."""
