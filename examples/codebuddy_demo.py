"""Minimal demonstration of a CodeBuddy session."""

from codebuddy_core.api.service import send_chat_message

if __name__ == "__main__":
    code = "def fibonacci(n):\n    fib = [0, 1]\n    while len(fib) < n:\n        fib.append(fib[-1] + fib[-2])\n    return fib\n"
    result = send_chat_message("demo-user", None, "Is there a bug for n <= 1?", code, "python", "debug")
    print("Session:", result["title"])
    print("CodeBuddy:", result["assistant_message"]["content"])
