"""Generation pipeline: completion engines, orchestration, persistence clients."""
