"""REST helpers for the dashboard: unwrap the response envelope and show failures."""

import streamlit as st
import requests

from config.settings import get_settings

API_URL = get_settings().API_URL.rstrip("/")


def api_get(path, params=None, timeout=10):
    """GET an API path and return its data, or None with an error shown"""
    try:
        response = requests.get(f"{API_URL}{path}", params=params, timeout=timeout)
        body = response.json()
    except (requests.RequestException, ValueError) as e:
        st.error(f"API请求失败: {e}")
        return None

    if not body.get("success"):
        st.error(body.get("message", "请求失败"))
        return None
    return body.get("data")


def api_send(method, path, payload):
    """POST/PUT a JSON payload; returns (ok, message)"""
    try:
        response = requests.request(method, f"{API_URL}{path}", json=payload, timeout=10)
        body = response.json()
    except (requests.RequestException, ValueError) as e:
        return False, f"API请求失败: {e}"
    return body.get("success", False), body.get("message", "")


def api_download(path, params=None, timeout=10):
    """GET a non-JSON resource and return its bytes, or None with an error shown"""
    try:
        response = requests.get(f"{API_URL}{path}", params=params, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        st.error(f"API请求失败: {e}")
        return None
    return response.content
