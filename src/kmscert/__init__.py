"""Self-signed X.509 certificates backed by AWS KMS keys."""
