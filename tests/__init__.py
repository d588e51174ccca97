"""
Tests package - Test suite for kubebridge.

Contains:
- unit/: Unit tests for individual components
- utils/: In-memory API server behind the discovery and dynamic client fakes
"""
