"""Admin area: backend-token sign-in, CRUD pages and the data tables behind them."""
