"""
factorylint Rules Package

This package contains the rules that analyze Ruby code for issues.
Rules are discovered and registered when the engine runs
``discover_rules(["factorylint.rules"])``.

To add a new rule:
1. Create a Python file in this directory (e.g., my_rule.py)
2. Define your rule class implementing the Rule protocol
3. Create a RULES list containing your rule instance

Example rule structure:

```python
from ..engine.types import RuleMeta, Requires, RuleContext, Finding

class MyRule:
    meta = RuleMeta(
        id="my.rule",
        category="style",
        priority="P2",
        autofix_safety="safe",
        description="Detects my specific issue",
        langs=["ruby"]
    )

    requires = Requires(syntax=True)

    def visit(self, ctx: RuleContext) -> Iterable[Finding]:
        ...

RULES = [MyRule()]
```
"""
