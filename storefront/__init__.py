"""Storefront cart synchronization: device cache, device store and Supabase replica."""
