"""phpautofix: byte-exact automatic fixes for PHP static analysis issues."""

__version__ = "0.1.0"
