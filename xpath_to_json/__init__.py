"""
HTML-to-JSON extraction driven by declarative XPath rules.

A rule configuration names what to select from a document (in a small
XPath subset translated to CSS selectors) and an optional output template
that shapes the extracted values into the final JSON.
"""
