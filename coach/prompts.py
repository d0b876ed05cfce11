"""Prompt templates for the trading coach."""

TRADE_ANALYSIS_PROMPT = """Analyze this trade and provide detailed insights:

Symbol: {symbol}
Type: {type}
Entry Price: {entry_price}
Exit Price: {exit_price}
Quantity: {quantity}
Entry Date: {entry_date}
Exit Date: {exit_date}
Profit/Loss: {profit}
Notes: {notes}
Confidence: {confidence}
Mood: {mood}
Strategy: {strategy}

Please provide:
1. Trade analysis and performance assessment
2. Risk management evaluation
3. Specific recommendations for improvement
4. Pattern recognition and insights
5. Risk score (1-10) and confidence level (1-100)

Use these labels so the answer can be parsed:
Risk score: <1-10>
Confidence: <1-100>
Recommendations: <one sentence>
Patterns: <one sentence>
Improvements: <one sentence>
"""

PORTFOLIO_ANALYSIS_PROMPT = """Analyze this trading portfolio and provide comprehensive insights:

Portfolio Summary:
- Total Trades: {total_trades}
- Winning Trades: {winning_trades}
- Losing Trades: {losing_trades}
- Win Rate: {win_rate:.2f}%
- Total Profit/Loss: ${total_profit:.2f}

Recent Trades (last 10):
{recent_trades}

Please provide:
1. Overall portfolio performance assessment
2. Risk analysis and exposure evaluation
3. Strengths and weaknesses identification
4. Specific recommendations for improvement
5. Opportunities and threats analysis
6. Overall score (1-100) with detailed breakdown

Use these labels so the answer can be parsed:
Overall score: <1-100>
Risk assessment: <one sentence>
Strengths: / Weaknesses: / Opportunities: / Threats: / Recommendations: <one sentence each>
"""

STRATEGY_PROMPT = """Generate a comprehensive trading strategy for {symbol} on {timeframe} timeframe.

Please include:
1. Market analysis and current conditions
2. Entry and exit criteria
3. Risk management rules
4. Position sizing guidelines
5. Technical indicators to use
6. Potential scenarios and outcomes
7. Risk/reward assessment
8. Implementation steps
"""

MARKET_INSIGHTS_PROMPT = """Provide market insights and analysis for the following symbols: {symbols}

Please include:
1. Current market sentiment for each symbol
2. Key technical levels to watch
3. Potential catalysts or events
4. Risk factors and considerations
5. Trading opportunities and setups
6. Market correlations and relationships
"""

# Replies used when no provider credentials are configured.

SIMULATED_TRADE_REPLY = (
    "Simulated analysis for {symbol} ({type}). "
    "Risk score: {risk_score}. "
    "Confidence: {confidence}. "
    "Recommendations: define the stop-loss before entry and size the position from it. "
    "Patterns: {pattern}. "
    "Improvements: write down the exit plan in the trade notes."
)

SIMULATED_PORTFOLIO_REPLY = (
    "Simulated portfolio review over {total_trades} trades. "
    "Overall score: {score}. "
    "Risk assessment: {risk}. "
    "Strengths: consistent journaling of entries. "
    "Weaknesses: exits are not always recorded promptly. "
    "Opportunities: review losing trades by session and strategy. "
    "Threats: oversized positions after a losing streak. "
    "Recommendations: keep focusing on risk management and consistency."
)

SIMULATED_STRATEGY_REPLY = (
    "Simulated {timeframe} strategy for {symbol}: trade in the direction of the "
    "higher-timeframe trend, enter on pullbacks to a rising moving average, risk "
    "at most 1% of capital per trade with a stop beyond the recent swing, and take "
    "partial profit at twice the initial risk."
)

SIMULATED_INSIGHTS_REPLY = (
    "Simulated market insights for {symbols}: watch recent highs and lows as key "
    "levels, be mindful of scheduled economic releases, and reduce size when "
    "volatility expands."
)
