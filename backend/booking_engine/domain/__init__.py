"""Pure domain rules for bookings."""
