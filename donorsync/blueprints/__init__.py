"""HTTP surface: checkout intake and the Stripe webhook."""
