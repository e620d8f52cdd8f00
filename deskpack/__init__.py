"""deskpack — bundle a Go + webview desktop app into OS-native distributables."""

__version__ = "0.1.0"
