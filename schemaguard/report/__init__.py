"""Report model with a red/yellow/green verdict and text, JSON and Markdown formatters."""