"""Models module - conditional ARIMA forecasting and kriging."""
