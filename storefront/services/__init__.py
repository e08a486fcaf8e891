"""Domain services: cart, inventory, checkout, merge and payments."""
