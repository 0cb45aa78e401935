"""
Core types for tokenization.
"""

type Token = int
type TokenPair = tuple[str, str]
type Score = float
type MergeRanks = dict[TokenPair, int]
