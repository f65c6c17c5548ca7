"""Search agents: patent, web and retail novelty pipelines."""
