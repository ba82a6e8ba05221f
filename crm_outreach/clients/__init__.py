"""External clients: Supabase."""

from crm_outreach.clients.supabase import Company, Job, Lead, SupabaseStore
