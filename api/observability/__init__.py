# SPDX-License-Identifier: Apache-2.0

"""
Logging and OpenTelemetry tracing setup.
"""
