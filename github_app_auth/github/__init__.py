"""GitHub App JWT signing, token exchange and token caching."""
