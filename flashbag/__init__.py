"""Spaced-repetition review scheduling for flashcard bags."""
