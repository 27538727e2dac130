"""HTTP API for push subscriptions and dispatch."""
