"""Read-only access to Axelar contract state.

LCD REST client with endpoint failover, the deployment config that maps
chains to contracts, rewards pool queries, and the AXL price cache.
"""
