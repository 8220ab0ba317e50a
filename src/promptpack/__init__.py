"""PromptPack - bounded project trees and context bundles from files and archives."""

__version__ = "0.1.0"
