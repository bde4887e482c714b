"""
Text Templates

Indicator code templates (WealthLab 8 C#) rendered into the editor, and the
fixed answer strings used by the synthesizer.
Rendering is pure string formatting: identical inputs give identical output.
"""

from typing import Any, Dict, Optional


NO_RESULTS_TEMPLATE = (
    "I couldn't find specific information about that in the {product} documentation. "
    "Could you try rephrasing your question or asking about a different topic?"
)

GROUNDED_INTRO_TEMPLATE = (
    'Based on the {product} documentation, I can provide the following information '
    'about "{query}":\n\n'
)

GROUNDED_CODE_TEMPLATE = "Here's a relevant code example:\n\n```{language}\n{code}\n```\n\n"

GROUNDED_ATTRIBUTION_TEMPLATE = (
    'This information comes from the "{title}" section of the documentation. '
    "You can find more details in the full documentation.\n\n"
)

GROUNDED_SEE_ALSO_TEMPLATE = 'You might also want to check out "{title}" for related information.'


SYSTEM_PROMPT = """You are a {product} (Wealth-Lab 8) indicator development expert.
You help users understand and build trading indicators for Wealth-Lab 8, a C# trading platform.

When users ask about indicators:
1. Explain the indicator concept clearly
2. Provide C# code examples when appropriate
3. If the user wants to build an indicator, help them understand the parameters and implementation details

DO NOT suggest related indicators or mention other indicators that might be useful. Focus only on the specific indicator the user is asking about.

Always use markdown formatting for code blocks with the appropriate language tag:
```csharp
// C# code here
```"""

DOCUMENTATION_CONTEXT_TEMPLATE = """

Relevant excerpts from the {product} documentation (cite them by title when you use them):
{excerpts}"""


# ============================================================================
# Indicator templates
# ============================================================================

SMA_CROSSOVER_TEMPLATE = """using WealthLab;
using WealthLab.Indicators;

// SMA Crossover Indicator
namespace MyIndicators
{{
  public class SMACrossover : IndicatorBase
  {{
    [Parameter]
    public int FastPeriod {{ get; set; }}

    [Parameter]
    public int SlowPeriod {{ get; set; }}

    public SMACrossover()
    {{
      // Default parameters
      FastPeriod = {fast};
      SlowPeriod = {slow};
    }}

    public override DataSeries Series(BarHistory bars)
    {{
      // Calculate fast and slow moving averages
      DataSeries fastMA = SMA.Series(bars.Close, FastPeriod);
      DataSeries slowMA = SMA.Series(bars.Close, SlowPeriod);

      // Return the difference (crossover indicator)
      return fastMA - slowMA;
    }}
  }}
}}"""

RSI_TEMPLATE = """using WealthLab;
using WealthLab.Indicators;

// RSI Indicator
namespace MyIndicators
{{
  public class MyRSI : IndicatorBase
  {{
    [Parameter]
    public int Period {{ get; set; }}

    [Parameter]
    public double Overbought {{ get; set; }}

    [Parameter]
    public double Oversold {{ get; set; }}

    public MyRSI()
    {{
      // Default parameters
      Period = {period};
      Overbought = {overbought};
      Oversold = {oversold};
    }}

    public override DataSeries Series(BarHistory bars)
    {{
      // Calculate RSI
      DataSeries rsi = RSI.Series(bars.Close, Period);

      return rsi;
    }}
  }}
}}"""

MACD_TEMPLATE = """using WealthLab;
using WealthLab.Indicators;

// MACD Indicator
namespace MyIndicators
{{
  public class MyMACD : IndicatorBase
  {{
    [Parameter]
    public int FastPeriod {{ get; set; }}

    [Parameter]
    public int SlowPeriod {{ get; set; }}

    [Parameter]
    public int SignalPeriod {{ get; set; }}

    public MyMACD()
    {{
      // Default parameters
      FastPeriod = {fast};
      SlowPeriod = {slow};
      SignalPeriod = {signal};
    }}

    public override DataSeries Series(BarHistory bars)
    {{
      // MACD line and its signal line
      DataSeries macdLine = MACD.Series(bars.Close, FastPeriod, SlowPeriod, SignalPeriod);
      DataSeries signalLine = EMA.Series(macdLine, SignalPeriod);

      // Histogram
      return macdLine - signalLine;
    }}
  }}
}}"""

BOLLINGER_TEMPLATE = """using WealthLab;
using WealthLab.Indicators;

// Bollinger Bands Indicator
namespace MyIndicators
{{
  public class MyBollingerBands : IndicatorBase
  {{
    [Parameter]
    public int Period {{ get; set; }}

    [Parameter]
    public double StdDev {{ get; set; }}

    public MyBollingerBands()
    {{
      // Default parameters
      Period = {period};
      StdDev = {std_dev};
    }}

    public override DataSeries Series(BarHistory bars)
    {{
      DataSeries upper = BBandUpper.Series(bars.Close, Period, StdDev);
      DataSeries lower = BBandLower.Series(bars.Close, Period, StdDev);

      // Position of price inside the bands, 0-100
      return (upper - bars.Close) / (upper - lower) * 100;
    }}
  }}
}}"""

CUSTOM_TEMPLATE = """using WealthLab;
using WealthLab.Indicators;

// Custom Indicator
namespace MyIndicators
{{
  public class CustomIndicator : IndicatorBase
  {{
    [Parameter]
    public int Period {{ get; set; }}

    public CustomIndicator()
    {{
      // Default parameters
      Period = {period};
    }}

    public override DataSeries Series(BarHistory bars)
    {{
      // Implement your indicator logic here
      DataSeries result = new DataSeries(bars);

      return result;
    }}
  }}
}}"""


# template id -> (template text, default parameters)
INDICATOR_TEMPLATES = {
    "sma": (SMA_CROSSOVER_TEMPLATE, {"fast": 10, "slow": 20}),
    "rsi": (RSI_TEMPLATE, {"period": 14, "overbought": 70, "oversold": 30}),
    "macd": (MACD_TEMPLATE, {"fast": 12, "slow": 26, "signal": 9}),
    "bollinger": (BOLLINGER_TEMPLATE, {"period": 20, "std_dev": 2}),
    "custom": (CUSTOM_TEMPLATE, {"period": 14}),
}

# Parameter aliases accepted from callers
_PARAM_ALIASES = {
    "fast_period": "fast",
    "fastPeriod": "fast",
    "slow_period": "slow",
    "slowPeriod": "slow",
    "signal_period": "signal",
    "signalPeriod": "signal",
    "stdDev": "std_dev",
    "deviations": "std_dev",
}


def _format_number(value: Any) -> str:
    """Render ints without a trailing .0 so output is stable."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_indicator_template(template: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Render an indicator template with parameters over its defaults.

    Unknown template ids render the custom template. Unknown parameters are
    ignored.
    """
    text, defaults = INDICATOR_TEMPLATES.get(template, INDICATOR_TEMPLATES["custom"])

    values = dict(defaults)
    for key, value in (params or {}).items():
        key = _PARAM_ALIASES.get(key, key)
        if key in values and value is not None:
            values[key] = value

    return text.format(**{k: _format_number(v) for k, v in values.items()})
