"""
risk_engine : Zika/malaria risk prediction core.

Components:
  errors          : exception taxonomy shared by the engine and the API layer
  fallback_scorer : deterministic rule-based risk scorer
  normalizer      : maps remote response envelopes to PredictionResult
  remote_client   : HTTP client for the remote AI scoring service
  orchestrator    : retry / rate-limit / fallback orchestration
"""
