"""PostgreSQL persistence for suppliers and upload history."""
