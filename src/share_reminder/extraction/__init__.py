"""
Extraction engine.

Components:
- models.py: ExtractedCandidate, TaskSource, TaskPriority
- rules.py: vocabularies + ConfidenceWeights (tunable data, no logic)
- dates.py: date/time recognition
- engine.py: extract() / extract_many()
"""
