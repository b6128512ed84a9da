"""JSON infrastructure endpoints: Stripe client config and health probes."""
