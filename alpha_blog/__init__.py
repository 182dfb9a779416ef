"""Premium content access and Stripe subscription sync for the Alpha Blog."""
