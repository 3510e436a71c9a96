"""External API clients: Supabase, platform functions, Unipile."""

from cadence.clients.functions import FunctionsClient
from cadence.clients.supabase import SupabaseClient
from cadence.clients.unipile import UnipileClient, LinkedInConnectionPoller
