"""printshop — Quote Lifecycle & Supplier Matching Engine for a print-shop backend."""
