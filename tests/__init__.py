"""Test package configuration for Code_RAG."""
