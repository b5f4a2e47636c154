"""
Productivity API Test Suite

This package contains tests for the session and vault backend:

- test_auth.py: Signup, login, logout, refresh, profile and deactivation
- test_tokens.py: Access/refresh token issuing and verification
- test_encryption.py: Vault secret encryption
- test_vault.py: Vault CRUD and the reveal flow
- test_categories.py: Category management
- test_security.py: Bearer middleware, optional auth, error envelope
- test_client.py: API client session and token storage

Run all tests:
    pytest tests/

Run specific test file:
    pytest tests/test_auth.py

Run with verbose output:
    pytest tests/ -v
"""
