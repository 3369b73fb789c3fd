"""
Rule Descriptor & Built-in Name Lists

Registration data for the ``auto-optional-chaining`` rule: identifier,
description, fix capability, messages, option schema and the plugin's
recommended configuration.  Also holds the built-in name lists the
suppression heuristics start from, and a markdown explanation of the rule.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from optchain.options import options_schema

PLUGIN_NAME = "auto-optional-chaining"
RULE_ID = "auto-optional-chaining"

# message ids
PREFER_CHAINING = "usePreferChaining"
PROPERTY_CHAINING = "usePropertyChaining"
OPTIONAL_COMPUTED = "useOptionalComputed"


@dataclass
class RuleMeta:
    rule_id: str
    description: str
    type: str                              # "problem" | "suggestion" | "layout"
    category: str
    recommended: bool
    fixable: str                           # "code" | "whitespace" | ""
    messages: Dict[str, str] = field(default_factory=dict)
    schema: Dict[str, Any] = field(default_factory=dict)

    @property
    def produces_fixes(self) -> bool:
        return bool(self.fixable)


RULE_META = RuleMeta(
    rule_id=RULE_ID,
    description="Fix most possible code errors through optional chaining",
    type="problem",
    category="Best Practices",
    recommended=False,
    fixable="code",
    messages={
        PREFER_CHAINING: "Prefer optional chaining.",
        PROPERTY_CHAINING: "Use optional chaining instead of regular property access.",
        OPTIONAL_COMPUTED: "Use optional chaining (?.[]) for computed property access",
    },
    schema=options_schema(),
)

RECOMMENDED_CONFIG: Dict[str, Any] = {
    "plugins": [PLUGIN_NAME],
    "rules": {f"{PLUGIN_NAME}/{RULE_ID}": "warn"},
}


# ═══════════════════════════════════════════════════════════════════════
#  Built-in name lists
# ═══════════════════════════════════════════════════════════════════════

# Root identifiers that are never null (globals, namespaces, libraries)
DEFAULT_EXCLUDE_IDENTIFIERS: Tuple[str, ...] = (
    "axios", "lodash", "moment", "dayjs", "process", "jquery",
    "Object", "Array", "Number", "String", "JSON", "Math", "Reflect", "Symbol",
    "document", "console", "React", "localStorage", "sessionStorage",
    "module", "import",
)

# A call to one of these anywhere in the object chain makes the result non-null
ASYNC_ROOT_METHODS = frozenset({
    "then", "catch", "finally",             # Promise
    "get", "post", "put", "delete",         # HTTP clients
    "subscribe",                            # RxJS
})

# Callbacks passed to these receive a value that is defined at first use
ASYNC_CALLBACK_METHODS = frozenset({"then", "catch", "finally"})

# Property names never rewritten, whatever the root
DEFAULT_EXCLUDED_CHAIN_METHODS: Tuple[str, ...] = (
    "then", "catch", "finally",
    "subscribe",
    "get", "post", "put", "patch", "delete", "use", "all",
)

STYLE_MODULE_NAMES = frozenset({"styles", "css", "classes", "cx", "classNames"})
STYLE_IMPORT_PATTERN = r"\.(css|scss|less|styl|sass|module\.css)$"


# ═══════════════════════════════════════════════════════════════════════
#  Explanation
# ═══════════════════════════════════════════════════════════════════════

def format_rule_explanation() -> str:
    """Return a human-readable explanation of the rule."""
    meta = RULE_META
    messages = "\n".join(f"- `{mid}`: {text}" for mid, text in meta.messages.items())
    return f"""## {PLUGIN_NAME}/{meta.rule_id}
**Type**: {meta.type} | **Category**: {meta.category} | **Fixable**: {meta.fixable}

{meta.description}.

### Non-Compliant Example
```js
const city = user && user.address && user.address.city;
const first = data.results[0];
```

### Compliant Example
```js
const city = user?.address?.city;
const first = data?.results?.[0];
```

### Never Rewritten
- write positions (`a.b = 1`, `a.b++`, `({{x: a.b}} = o)`, `for (a.b of xs)`)
- roots known to be defined: {", ".join(DEFAULT_EXCLUDE_IDENTIFIERS)}
- results of {", ".join(sorted(ASYNC_ROOT_METHODS))} calls
- React refs (`inputRef.current`) and style-sheet modules (`styles.container`)
- `super.x`, the callee of `new a.b()` and template tags, where `?.` does not parse

### Options
| Option | Effect |
|--------|--------|
| `excludeIdentifiers` | extra root names treated as never-null |
| `excludeChainMethods` | extra property names never rewritten |

### Messages
{messages}"""
