"""Personal notes manager backend: auth (password + OTP, Google) and notes API."""

__version__ = "1.1.0"
