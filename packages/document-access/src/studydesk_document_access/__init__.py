"""Remote document store access: contract, sentinels and implementations."""
