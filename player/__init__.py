"""Timed, narrated abacus drill player."""
